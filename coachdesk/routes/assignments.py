from flask import Blueprint, request, current_app
from flask_login import current_user

from coachdesk.auth import coach_required, ROLE_TRAINEE
from coachdesk.errors import ValidationError
from coachdesk.services.answer_service import AnswerService
from coachdesk.services.assignment_service import AssignmentService
from coachdesk.utils import api_response, create_notification

assignments_bp = Blueprint('assignments', __name__)


@assignments_bp.route('/api/assignments', methods=['POST'])
@coach_required
def assign_questionnaire():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.", field='body')

    assignment = AssignmentService.assign(current_user.id, data.get('trainee_id'), data.get('template_id'))

    # Notification sink: best effort, the assignment is already committed
    notification = create_notification(
        recipient_id=assignment.trainee_id,
        recipient_role=ROLE_TRAINEE,
        type='questionnaire_assigned',
        title='New questionnaire',
        message=f"Your coach sent you \"{assignment.title}\" to fill in.",
        assignment_id=assignment.id
    )
    if notification is None:
        current_app.logger.warning(f"Assignment {assignment.id} created without trainee notification")

    return api_response(data={'assignment': assignment.to_dict()}, status=201)


@assignments_bp.route('/api/assignments', methods=['GET'])
@coach_required
def list_assignments():
    status = request.args.get('status') or None
    assignments = AssignmentService.list_for_coach(current_user.id, status=status)
    return api_response(data={'assignments': [a.to_dict() for a in assignments]})


@assignments_bp.route('/api/assignments/<assignment_id>', methods=['GET'])
@coach_required
def get_assignment(assignment_id):
    assignment = AssignmentService.get_assignment_for_coach(assignment_id, current_user.id)
    return api_response(data={'assignment': assignment.to_dict()})


@assignments_bp.route('/api/assignments/<assignment_id>/answers', methods=['GET'])
@coach_required
def get_answers(assignment_id):
    answer_set = AnswerService.get_answer_set_for_coach(assignment_id, current_user.id)
    return api_response(data={'answer_set': answer_set.to_dict()})
