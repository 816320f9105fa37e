from flask import Blueprint, request
from flask_login import login_required, current_user

from coachdesk.errors import NotFound, Forbidden
from coachdesk.models import db, Notification
from coachdesk.utils import api_response, parse_int_arg

notifications_bp = Blueprint('notifications', __name__)


def _mine():
    return Notification.query.filter_by(recipient_id=current_user.id, recipient_role=current_user.role)


@notifications_bp.route('/api/notifications', methods=['GET'])
@login_required
def get_notifications():
    limit = parse_int_arg(request.args.get('limit'), default=20, maximum=100)

    # Unread first, then the most recent read ones up to the limit
    unread = _mine().filter_by(read=False).order_by(Notification.created_at.desc()).all()
    read = []
    read_limit = limit - len(unread)
    if read_limit > 0:
        read = _mine().filter_by(read=True).order_by(Notification.created_at.desc()).limit(read_limit).all()

    return api_response(data={
        'unread_count': len(unread),
        'notifications': [{
            'id': n.id,
            'type': n.type,
            'title': n.title,
            'message': n.message,
            'assignment_id': n.assignment_id,
            'read': n.read,
            'created_at': n.created_at.isoformat() if n.created_at else None
        } for n in unread + read]
    })


@notifications_bp.route('/api/notifications/<int:id>/read', methods=['POST'])
@login_required
def mark_read(id):
    notification = db.session.get(Notification, id)
    if not notification:
        raise NotFound(f"Notification {id} not found.", notification_id=id)
    if notification.recipient_id != current_user.id or notification.recipient_role != current_user.role:
        raise Forbidden("This notification belongs to someone else.", notification_id=id)

    notification.read = True
    db.session.commit()
    return api_response(data={'id': id, 'read': True})


@notifications_bp.route('/api/notifications/read-all', methods=['POST'])
@login_required
def mark_all_read():
    updated = _mine().filter_by(read=False).update({'read': True})
    db.session.commit()
    return api_response(data={'updated': updated})
