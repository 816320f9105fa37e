from flask import jsonify, current_app
from coachdesk.models import db, Notification


def api_response(success=True, data=None, error=None, status=200):
    """Standardized JSON response for all API routes."""
    response = {
        'success': success,
        'data': data,
        'error': error
    }
    return jsonify(response), status


def create_notification(recipient_id, recipient_role, type, title, message, assignment_id=None):
    """
    Notification sink. Runs after the operation that triggered it has
    committed, so a failure here is logged and never undoes that operation.
    """
    try:
        notification = Notification(
            recipient_id=str(recipient_id),
            recipient_role=recipient_role,
            type=type,
            title=title,
            message=message,
            assignment_id=assignment_id
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except Exception as e:
        current_app.logger.error(f"Error creating notification for {recipient_role} {recipient_id}: {e}")
        db.session.rollback()
        return None


def parse_int_arg(value, default, minimum=1, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return default
    if maximum is not None and number > maximum:
        return maximum
    return number
