"""Admin routes: user management and cache control."""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

import cache
import queries
from auth import ROLES, User, admin_required, form_data, create_user, get_all_users, delete_user, change_password

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


@admin_bp.route('/')
@admin_required
def dashboard():
    """Data and cache overview."""
    return jsonify({
        'db': queries.get_db_stats(),
        'cache': cache.get_cache().stats(),
    })


# ============ USER MANAGEMENT ============

@admin_bp.route('/users')
@admin_required
def users():
    """List all users."""
    return jsonify(get_all_users())


@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user_route():
    """Create a new user."""
    data = form_data()
    if data is None:
        return jsonify({'error': 'Invalid request data'}), 400
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    role = data.get('role') or 'user'

    if not username or not password:
        return jsonify({'error': 'Username and password are required'}), 400

    if role not in ROLES:
        return jsonify({'error': f"Role must be one of {', '.join(ROLES)}"}), 400

    user_id = create_user(username, password, role)
    if not user_id:
        return jsonify({'error': f'Username "{username}" already exists'}), 409

    logger.info(f"User {username} ({role}) created by {current_user.username}")
    return jsonify({'id': user_id, 'username': username, 'role': role}), 201


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user_route(user_id):
    """Delete a user."""
    if user_id == current_user.id:
        return jsonify({'error': 'Cannot delete your own account'}), 400
    if not delete_user(user_id):
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'success': True})


@admin_bp.route('/users/<int:user_id>/reset-password', methods=['POST'])
@admin_required
def reset_password_route(user_id):
    """Reset a user's password."""
    data = form_data()
    if data is None:
        return jsonify({'error': 'Invalid request data'}), 400
    new_password = data.get('password') or ''
    if not new_password:
        return jsonify({'error': 'Password is required'}), 400
    if not User.get(user_id):
        return jsonify({'error': 'User not found'}), 404
    change_password(user_id, new_password)
    return jsonify({'success': True})


# ============ CACHE ============

@admin_bp.route('/cache')
@admin_required
def cache_stats():
    return jsonify(cache.get_cache().stats())


@admin_bp.route('/cache/invalidate', methods=['POST'])
@admin_required
def invalidate_cache():
    """Drop cached mapping responses, e.g. after a data import."""
    data = request.get_json(silent=True) or {}
    pattern = data.get('pattern') or None
    removed = cache.get_cache().invalidate(pattern)
    return jsonify({'invalidated': removed})
