"""Authentication for the campaign API."""

import sqlite3
from datetime import datetime
from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import LoginManager, UserMixin, login_user, logout_user, login_required, current_user
from werkzeug.security import generate_password_hash, check_password_hash

import queries

auth_bp = Blueprint('auth', __name__)
login_manager = LoginManager()

ROLES = ('admin', 'approver', 'user')


def get_db():
    return queries.get_connection()


class User(UserMixin):
    def __init__(self, id, username, role):
        self.id = id
        self.username = username
        self.role = role

    @staticmethod
    def get(user_id):
        conn = get_db()
        cursor = conn.cursor()
        cursor.execute("SELECT id, username, role FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        conn.close()
        if row:
            return User(row['id'], row['username'], row['role'])
        return None

    @staticmethod
    def get_by_username(username):
        conn = get_db()
        cursor = conn.cursor()
        cursor.execute("SELECT id, username, password_hash, role FROM users WHERE username = ?", (username,))
        row = cursor.fetchone()
        conn.close()
        return row

    def is_admin(self):
        return self.role == 'admin'

    def can_approve(self):
        return self.role in ('admin', 'approver')

    def to_dict(self):
        return {'id': self.id, 'username': self.username, 'role': self.role}


@login_manager.user_loader
def load_user(user_id):
    return User.get(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401


def role_required(*roles):
    """Decorator for routes limited to the given roles."""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if current_user.role not in roles:
                return jsonify({'error': 'Access denied'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = role_required('admin')


def form_data():
    """JSON object body or form fields; None for any other JSON payload."""
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    return data if isinstance(data, dict) else None


@auth_bp.route('/login', methods=['POST'])
def login():
    data = form_data()
    if data is None:
        return jsonify({'error': 'Invalid request data'}), 400

    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    user_row = User.get_by_username(username)
    if not user_row or not check_password_hash(user_row['password_hash'], password):
        return jsonify({'error': 'Invalid username or password'}), 401

    user = User(user_row['id'], user_row['username'], user_row['role'])
    login_user(user)

    # Update last login
    conn = get_db()
    conn.execute("UPDATE users SET last_login = ? WHERE id = ?", (datetime.now(), user.id))
    conn.commit()
    conn.close()

    return jsonify({'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'status': 'logged out'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})


# Helper functions for user management
def create_user(username, password, role='user'):
    """Create a new user. Returns user id or None if the username is taken."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    conn = get_db()
    cursor = conn.cursor()
    try:
        cursor.execute(
            "INSERT INTO users (username, password_hash, role) VALUES (?, ?, ?)",
            (username, generate_password_hash(password), role)
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        return None
    finally:
        conn.close()


def change_password(user_id, new_password):
    """Change a user's password."""
    conn = get_db()
    conn.execute("UPDATE users SET password_hash = ? WHERE id = ?",
                 (generate_password_hash(new_password), user_id))
    conn.commit()
    conn.close()


def get_all_users():
    """Get all users."""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT id, username, role, created_at, last_login FROM users ORDER BY username")
    users = [dict(row) for row in cursor.fetchall()]
    conn.close()
    return users


def delete_user(user_id):
    """Delete a user. Returns True if a row was removed."""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted
