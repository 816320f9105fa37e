import pytest
from sqlalchemy import update

from coachdesk.errors import Conflict, Forbidden, NotFound, ValidationError
from coachdesk.models import db, Assignment, AnswerSet, STATUS_ANSWERED
from coachdesk.services import answer_service
from coachdesk.services.answer_service import AnswerService, validate_answers
from coachdesk.services.assignment_service import AssignmentService
from coachdesk.questions import Question

QUESTIONS = [Question('q1', 'rating', 'Energy level?'), Question('q2', 'open', 'What went well?')]


@pytest.fixture
def assignment(system_template):
    return AssignmentService.assign('c1', 't1', system_template.id)


def test_validate_normalizes():
    normalized = validate_answers(QUESTIONS, {'q1': {'rating': 8}, 'q2': {'text': '  Passing drills '}})
    assert normalized == {'q1': {'rating': 8}, 'q2': {'text': 'Passing drills'}}


@pytest.mark.parametrize('answers', [
    {'q1': {'rating': 0}, 'q2': {'text': 'ok'}},
    {'q1': {'rating': 11}, 'q2': {'text': 'ok'}},
    {'q1': {'rating': 8.5}, 'q2': {'text': 'ok'}},
    {'q1': {'rating': True}, 'q2': {'text': 'ok'}},
    {'q1': {'rating': '8'}, 'q2': {'text': 'ok'}},
    {'q1': {'text': 'eight'}, 'q2': {'text': 'ok'}},
    {'q1': {'rating': 8}, 'q2': {'text': '   '}},
    {'q1': {'rating': 8}, 'q2': {'rating': 5}},
    {'q1': {'rating': 8}},
    {'q1': {'rating': 8}, 'q2': {'text': 'ok'}, 'q9': {'text': 'extra'}},
    ['q1', 'q2'],
    None,
])
def test_validate_rejects(answers):
    with pytest.raises(ValidationError):
        validate_answers(QUESTIONS, answers)


def test_stray_answer_ids_reported():
    with pytest.raises(ValidationError) as excinfo:
        validate_answers(QUESTIONS, {'q1': {'rating': 1}, 'q2': {'text': 'x'}, 'zz': {}, 'aa': {}})
    assert excinfo.value.details['question_ids'] == ['aa', 'zz']


def test_submit_closes_assignment(assignment):
    answer_set = AnswerService.submit_answers(assignment.id, 't1', {'q1': {'rating': 8}, 'q2': {'text': 'Passing'}})

    reloaded = AssignmentService.get_assignment(assignment.id)
    assert reloaded.status == STATUS_ANSWERED
    assert reloaded.answered_at is not None
    assert answer_set.assignment_id == assignment.id
    assert answer_set.answers == {'q1': {'rating': 8}, 'q2': {'text': 'Passing'}}


def test_second_submit_conflicts(assignment):
    AnswerService.submit_answers(assignment.id, 't1', {'q1': {'rating': 8}, 'q2': {'text': 'Passing'}})
    with pytest.raises(Conflict):
        AnswerService.submit_answers(assignment.id, 't1', {'q1': {'rating': 2}, 'q2': {'text': 'Other'}})
    assert AnswerSet.query.filter_by(assignment_id=assignment.id).count() == 1


@pytest.mark.parametrize('answers', [
    {'q1': {'rating': 11}, 'q2': {'text': 'x'}},
    {'q1': {'rating': 0}, 'q2': {'text': 'x'}},
    {'q1': {'rating': 8.5}, 'q2': {'text': 'x'}},
    {'q1': {'rating': 8}},
])
def test_invalid_submit_leaves_assignment_pending(assignment, answers):
    with pytest.raises(ValidationError):
        AnswerService.submit_answers(assignment.id, 't1', answers)
    assert AssignmentService.get_assignment(assignment.id).status == 'pending'
    assert AnswerSet.query.count() == 0


def test_submit_by_other_trainee(assignment):
    with pytest.raises(Forbidden):
        AnswerService.submit_answers(assignment.id, 't2', {'q1': {'rating': 8}, 'q2': {'text': 'x'}})
    with pytest.raises(NotFound):
        AnswerService.submit_answers('missing', 't1', {})


def test_concurrent_submit_loses(assignment, monkeypatch):
    assignment_id = assignment.id
    real_validate = answer_service.validate_answers

    def validate_while_other_request_wins(questions, answers):
        normalized = real_validate(questions, answers)
        db.session.execute(
            update(Assignment).where(Assignment.id == assignment_id).values(status=STATUS_ANSWERED)
        )
        db.session.commit()
        return normalized

    monkeypatch.setattr(answer_service, 'validate_answers', validate_while_other_request_wins)
    with pytest.raises(Conflict):
        AnswerService.submit_answers(assignment_id, 't1', {'q1': {'rating': 8}, 'q2': {'text': 'x'}})
    assert AnswerSet.query.filter_by(assignment_id=assignment_id).count() == 0


def test_reading_answers(assignment):
    with pytest.raises(NotFound):
        AnswerService.get_answer_set_for_coach(assignment.id, 'c1')

    AnswerService.submit_answers(assignment.id, 't1', {'q1': {'rating': 3}, 'q2': {'text': 'Tired'}})
    assert AnswerService.get_answer_set_for_coach(assignment.id, 'c1').answers['q1'] == {'rating': 3}
    assert AnswerService.get_answer_set_for_trainee(assignment.id, 't1').answers['q2'] == {'text': 'Tired'}
    with pytest.raises(Forbidden):
        AnswerService.get_answer_set_for_coach(assignment.id, 'c2')
    with pytest.raises(Forbidden):
        AnswerService.get_answer_set_for_trainee(assignment.id, 't2')
