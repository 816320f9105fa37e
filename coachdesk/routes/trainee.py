from flask import Blueprint, request
from flask_login import current_user

from coachdesk.auth import trainee_required
from coachdesk.services.answer_service import AnswerService
from coachdesk.services.assignment_service import AssignmentService
from coachdesk.utils import api_response

trainee_bp = Blueprint('trainee', __name__)


@trainee_bp.route('/api/me/assignments', methods=['GET'])
@trainee_required
def my_assignments():
    assignments = AssignmentService.list_for_trainee(current_user.id)
    return api_response(data={'assignments': [a.to_dict() for a in assignments]})


@trainee_bp.route('/api/me/assignments/<assignment_id>', methods=['GET'])
@trainee_required
def my_assignment(assignment_id):
    """Frozen questions for rendering the fill-in form."""
    assignment = AssignmentService.get_assignment_for_trainee(assignment_id, current_user.id)
    return api_response(data={'assignment': assignment.to_dict()})


@trainee_bp.route('/api/me/assignments/<assignment_id>/answers', methods=['POST'])
@trainee_required
def submit_answers(assignment_id):
    data = request.get_json(silent=True)
    answers = data.get('answers') if isinstance(data, dict) else None
    answer_set = AnswerService.submit_answers(assignment_id, current_user.id, answers)
    return api_response(data={'answer_set': answer_set.to_dict()}, status=201)


@trainee_bp.route('/api/me/assignments/<assignment_id>/answers', methods=['GET'])
@trainee_required
def my_answers(assignment_id):
    answer_set = AnswerService.get_answer_set_for_trainee(assignment_id, current_user.id)
    return api_response(data={'answer_set': answer_set.to_dict()})
