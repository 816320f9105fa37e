import logging

from coachdesk.errors import NotFound, Forbidden, ValidationError
from coachdesk.models import db, Assignment, STATUS_PENDING, ASSIGNMENT_STATUSES
from coachdesk.questions import questions_to_json
from coachdesk.services.template_service import TemplateService, require_id

logger = logging.getLogger(__name__)


class AssignmentService:
    @staticmethod
    def assign(coach_id, trainee_id, template_id):
        """
        Send a point-in-time copy of a template to one trainee.
        Read-only on the template side: the template row is never written.
        """
        coach_id = require_id(coach_id, 'coach_id')
        trainee_id = require_id(trainee_id, 'trainee_id')
        template = TemplateService.get_visible_template(template_id, coach_id)

        questions = template.question_list
        if not questions:
            raise ValidationError(
                "Template has no questions and cannot be assigned.",
                template_id=template.id
            )

        assignment = Assignment(
            coach_id=coach_id,
            trainee_id=trainee_id,
            source_template_id=template.id,
            title=template.title,
            category=template.category,
            # Rebuilt from immutable values: shares nothing with the template row
            questions=questions_to_json(questions),
            status=STATUS_PENDING
        )
        db.session.add(assignment)
        db.session.commit()
        logger.info(f"Coach {coach_id} assigned template {template.id} to trainee {trainee_id} as {assignment.id}")
        return assignment

    @staticmethod
    def get_assignment(assignment_id):
        assignment = db.session.get(Assignment, str(assignment_id)) if assignment_id else None
        if not assignment:
            raise NotFound(f"Assignment {assignment_id} not found.", assignment_id=assignment_id)
        return assignment

    @staticmethod
    def get_assignment_for_coach(assignment_id, coach_id):
        coach_id = require_id(coach_id, 'coach_id')
        assignment = AssignmentService.get_assignment(assignment_id)
        if assignment.coach_id != coach_id:
            raise Forbidden("This assignment belongs to another coach.", assignment_id=assignment.id)
        return assignment

    @staticmethod
    def get_assignment_for_trainee(assignment_id, trainee_id):
        trainee_id = require_id(trainee_id, 'trainee_id')
        assignment = AssignmentService.get_assignment(assignment_id)
        if assignment.trainee_id != trainee_id:
            raise Forbidden("This assignment was sent to another trainee.", assignment_id=assignment.id)
        return assignment

    @staticmethod
    def list_for_trainee(trainee_id):
        trainee_id = require_id(trainee_id, 'trainee_id')
        return Assignment.query.filter_by(trainee_id=trainee_id)\
            .order_by(Assignment.assigned_at.desc(), Assignment.id.desc()).all()

    @staticmethod
    def list_for_coach(coach_id, status=None):
        coach_id = require_id(coach_id, 'coach_id')
        query = Assignment.query.filter_by(coach_id=coach_id)
        if status is not None:
            if status not in ASSIGNMENT_STATUSES:
                raise ValidationError(
                    f"Unknown status '{status}'. Use one of: {', '.join(ASSIGNMENT_STATUSES)}.",
                    field='status'
                )
            query = query.filter_by(status=status)
        return query.order_by(Assignment.assigned_at.desc(), Assignment.id.desc()).all()
