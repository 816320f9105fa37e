import logging
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from coachdesk.errors import NotFound, ValidationError, Conflict
from coachdesk.models import db, Assignment, AnswerSet, STATUS_PENDING, STATUS_ANSWERED, get_now
from coachdesk.questions import KIND_RATING, KIND_OPEN, RATING_MIN, RATING_MAX
from coachdesk.services.assignment_service import AssignmentService
from coachdesk.services.template_service import require_id

logger = logging.getLogger(__name__)


def _rating_value(question, value):
    if not isinstance(value, dict) or set(value) != {'rating'}:
        raise ValidationError(
            f"Question '{question.id}' expects an answer of the form {{\"rating\": {RATING_MIN}-{RATING_MAX}}}.",
            question_id=question.id
        )
    rating = value['rating']
    # bool is an int subclass; True must not pass as a rating of 1
    if isinstance(rating, bool) or not isinstance(rating, int) or not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationError(
            f"Rating for question '{question.id}' must be a whole number from {RATING_MIN} to {RATING_MAX}.",
            question_id=question.id
        )
    return rating


def _text_value(question, value):
    if not isinstance(value, dict) or set(value) != {'text'}:
        raise ValidationError(
            f"Question '{question.id}' expects an answer of the form {{\"text\": \"...\"}}.",
            question_id=question.id
        )
    text = value['text']
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(
            f"Answer for question '{question.id}' cannot be empty.",
            question_id=question.id
        )
    return text.strip()


def validate_answers(questions, answers):
    """
    Check a submitted answer mapping against a frozen question list and
    return its normalized form: {question_id: {"rating": int} | {"text": str}}.
    Every question needs an answer and no answer may point outside the list.
    """
    if not isinstance(answers, dict):
        raise ValidationError("Answers must be an object keyed by question id.", field='answers')

    normalized = {}
    for question in questions:
        if question.id not in answers:
            raise ValidationError(
                f"Missing answer for question '{question.id}'.",
                question_id=question.id
            )
        value = answers[question.id]
        if question.kind == KIND_RATING:
            normalized[question.id] = {'rating': _rating_value(question, value)}
        elif question.kind == KIND_OPEN:
            normalized[question.id] = {'text': _text_value(question, value)}
        else:
            raise TypeError(f"Unhandled question kind: {question.kind!r}")

    stray = sorted(str(key) for key in set(answers) - {q.id for q in questions})
    if stray:
        raise ValidationError(
            f"Answers given for unknown questions: {', '.join(stray)}.",
            question_ids=stray
        )
    return normalized


class AnswerService:
    @staticmethod
    def submit_answers(assignment_id, trainee_id, answers):
        """
        Record the trainee's answers and close the assignment.

        The pending -> answered flip is a conditional UPDATE in the same
        transaction as the answer set insert: either both land or neither
        does, and of two concurrent submits exactly one wins.
        """
        trainee_id = require_id(trainee_id, 'trainee_id')
        assignment = AssignmentService.get_assignment_for_trainee(assignment_id, trainee_id)
        if assignment.status != STATUS_PENDING:
            logger.warning(f"Trainee {trainee_id} re-submitted answered assignment {assignment.id}")
            raise Conflict(
                "This questionnaire has already been answered.",
                assignment_id=assignment.id, status=assignment.status
            )

        normalized = validate_answers(assignment.question_list, answers)

        now = get_now()
        result = db.session.execute(
            update(Assignment)
            .where(Assignment.id == assignment.id, Assignment.status == STATUS_PENDING)
            .values(status=STATUS_ANSWERED, answered_at=now)
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.warning(f"Assignment {assignment_id} was answered by a concurrent request")
            raise Conflict(
                "This questionnaire has already been answered.",
                assignment_id=assignment_id
            )

        answer_set = AnswerSet(
            assignment_id=assignment.id,
            trainee_id=trainee_id,
            answers=normalized,
            submitted_at=now
        )
        db.session.add(answer_set)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning(f"Duplicate answer set rejected for assignment {assignment_id}")
            raise Conflict(
                "This questionnaire has already been answered.",
                assignment_id=assignment_id
            )

        logger.info(f"Trainee {trainee_id} answered assignment {assignment.id}")
        return answer_set

    @staticmethod
    def _answer_set_of(assignment):
        answer_set = AnswerSet.query.filter_by(assignment_id=assignment.id).first()
        if not answer_set:
            raise NotFound(
                "This questionnaire has not been answered yet.",
                assignment_id=assignment.id
            )
        return answer_set

    @staticmethod
    def get_answer_set_for_coach(assignment_id, coach_id):
        assignment = AssignmentService.get_assignment_for_coach(assignment_id, coach_id)
        return AnswerService._answer_set_of(assignment)

    @staticmethod
    def get_answer_set_for_trainee(assignment_id, trainee_id):
        assignment = AssignmentService.get_assignment_for_trainee(assignment_id, trainee_id)
        return AnswerService._answer_set_of(assignment)
