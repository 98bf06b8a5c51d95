"""Campaign message routes: creation with approval-tier routing, and approvals."""

import json
import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

import approvals
from auth import get_db, role_required

logger = logging.getLogger(__name__)

messages_bp = Blueprint('messages', __name__, url_prefix='/api/messages')

PLATFORMS = ('EMAIL', 'SMS', 'FACEBOOK', 'TWITTER', 'INSTAGRAM', 'WEBSITE', 'PRINT')
STATUSES = ('DRAFT', 'PENDING_APPROVAL', 'APPROVED', 'REJECTED', 'CHANGES_REQUESTED', 'PUBLISHED')

# Statuses an author may request when creating a message
CREATE_STATUSES = ('DRAFT', 'PENDING_APPROVAL')


def validate_message(data):
    """Return (cleaned, errors) for a create-message body."""
    errors = []
    cleaned = {}

    for field in ('campaignId', 'title', 'content'):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{field} is required")
        else:
            cleaned[field] = value

    platform = data.get('platform')
    if platform not in PLATFORMS:
        errors.append(f"platform must be one of {', '.join(PLATFORMS)}")
    cleaned['platform'] = platform

    status = data.get('status', 'PENDING_APPROVAL')
    if status not in CREATE_STATUSES:
        errors.append(f"status must be one of {', '.join(CREATE_STATUSES)}")
    cleaned['status'] = status

    return cleaned, errors


def initial_status(requested, tier):
    """Anything above GREEN goes into the approval queue."""
    if tier != approvals.GREEN:
        return 'PENDING_APPROVAL'
    return requested


def row_to_message(row):
    message = dict(row)
    message['approval_analysis'] = json.loads(message['approval_analysis'] or '{}')
    return message


def get_message(conn, message_id):
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM messages WHERE id = ?", (message_id,))
    row = cursor.fetchone()
    return row_to_message(row) if row else None


@messages_bp.route('', methods=['GET'])
@login_required
def list_messages():
    """Messages visible to the current user, newest first."""
    query = "SELECT * FROM messages WHERE 1 = 1"
    params = []

    if not current_user.can_approve():
        query += " AND author_id = ?"
        params.append(current_user.id)

    campaign_id = request.args.get('campaignId')
    if campaign_id:
        query += " AND campaign_id = ?"
        params.append(campaign_id)

    status = request.args.get('status')
    if status:
        query += " AND status = ?"
        params.append(status)

    query += " ORDER BY created_at DESC, id DESC"

    conn = get_db()
    cursor = conn.cursor()
    cursor.execute(query, params)
    messages = [row_to_message(row) for row in cursor.fetchall()]
    conn.close()

    return jsonify(messages)


@messages_bp.route('', methods=['POST'])
@login_required
def create_message():
    """Create a message, routing it by content risk tier."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request data'}), 400

    cleaned, errors = validate_message(data)
    if errors:
        return jsonify({'error': 'Invalid request data', 'details': errors}), 400

    result = approvals.classify_content(cleaned['content'])
    tier = result['tier']
    status = initial_status(cleaned['status'], tier)

    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO messages
            (campaign_id, author_id, title, content, platform, status, approval_tier, approval_analysis)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    """, (cleaned['campaignId'], current_user.id, cleaned['title'], cleaned['content'],
          cleaned['platform'], status, tier, json.dumps(result['analysis'])))
    conn.commit()
    message = get_message(conn, cursor.lastrowid)
    conn.close()

    logger.info(f"Message {message['id']} created by user {current_user.id} ({tier})")
    return jsonify(message), 201


@messages_bp.route('/<int:message_id>', methods=['GET'])
@login_required
def message_detail(message_id):
    conn = get_db()
    message = get_message(conn, message_id)
    if not message:
        conn.close()
        return jsonify({'error': 'Message not found'}), 404
    if message['author_id'] != current_user.id and not current_user.can_approve():
        conn.close()
        return jsonify({'error': 'Access denied'}), 403

    cursor = conn.cursor()
    cursor.execute("""
        SELECT a.id, a.decision, a.comment, a.created_at, u.username as approved_by
        FROM message_approvals a
        JOIN users u ON a.approved_by_id = u.id
        WHERE a.message_id = ?
        ORDER BY a.created_at, a.id
    """, (message_id,))
    message['approvals'] = [dict(row) for row in cursor.fetchall()]
    conn.close()

    return jsonify(message)


def decide(message_id, decision):
    """Move a pending message to APPROVED, REJECTED or CHANGES_REQUESTED and record who did it."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return jsonify({'error': 'Invalid request data'}), 400
    comment = body.get('comment')

    conn = get_db()
    message = get_message(conn, message_id)
    if not message:
        conn.close()
        return jsonify({'error': 'Message not found'}), 404

    if message['status'] != 'PENDING_APPROVAL':
        conn.close()
        return jsonify({'error': f"Message is {message['status']}, not pending approval"}), 409

    if (decision == 'APPROVED' and message['approval_tier'] == approvals.RED
            and not current_user.is_admin()):
        conn.close()
        return jsonify({'error': 'RED tier messages require admin approval'}), 403

    # Another approver may have decided since the read above
    cursor = conn.execute("""
        UPDATE messages SET status = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND status = 'PENDING_APPROVAL'
    """, (decision, message_id))
    if cursor.rowcount == 0:
        conn.rollback()
        conn.close()
        return jsonify({'error': 'Message is no longer pending approval'}), 409

    conn.execute("""
        INSERT INTO message_approvals (message_id, approved_by_id, decision, comment)
        VALUES (?, ?, ?, ?)
    """, (message_id, current_user.id, decision, comment))
    conn.commit()
    message = get_message(conn, message_id)
    conn.close()

    logger.info(f"Message {message_id} {decision.lower()} by user {current_user.id}")
    return jsonify(message)


@messages_bp.route('/<int:message_id>/approve', methods=['POST'])
@role_required('admin', 'approver')
def approve_message(message_id):
    return decide(message_id, 'APPROVED')


@messages_bp.route('/<int:message_id>/reject', methods=['POST'])
@role_required('admin', 'approver')
def reject_message(message_id):
    return decide(message_id, 'REJECTED')


@messages_bp.route('/<int:message_id>/request-changes', methods=['POST'])
@role_required('admin', 'approver')
def request_changes(message_id):
    return decide(message_id, 'CHANGES_REQUESTED')


@messages_bp.route('/<int:message_id>/publish', methods=['POST'])
@login_required
def publish_message(message_id):
    """Mark an approved message as published."""
    conn = get_db()
    message = get_message(conn, message_id)
    if not message:
        conn.close()
        return jsonify({'error': 'Message not found'}), 404
    if message['author_id'] != current_user.id and not current_user.can_approve():
        conn.close()
        return jsonify({'error': 'Access denied'}), 403

    cursor = conn.execute("""
        UPDATE messages SET status = 'PUBLISHED', updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND status = 'APPROVED'
    """, (message_id,))
    if cursor.rowcount == 0:
        conn.close()
        return jsonify({'error': 'Only approved messages can be published'}), 409
    conn.commit()
    message = get_message(conn, message_id)
    conn.close()

    logger.info(f"Message {message_id} published by user {current_user.id}")
    return jsonify(message)
