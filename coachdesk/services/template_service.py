import logging
from sqlalchemy import or_, and_, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from coachdesk.errors import NotFound, Forbidden, ValidationError, Conflict
from coachdesk.models import db, QuestionnaireTemplate, Assignment, OWNER_SYSTEM, OWNER_COACH, get_now
from coachdesk.questions import parse_questions, apply_question_texts, questions_to_json

logger = logging.getLogger(__name__)

PATCH_FIELDS = {'title', 'category', 'questions', 'question_texts', 'version'}
TITLE_MAX = 200
CATEGORY_MAX = 50


def require_id(value, field):
    """Identity ids come from the session provider; reject blanks early."""
    if isinstance(value, bool) or not isinstance(value, (str, int)) or not str(value).strip():
        raise ValidationError(f"{field} is required.", field=field)
    return str(value).strip()


def clean_title(title):
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required.", field='title')
    title = title.strip()
    if len(title) > TITLE_MAX:
        raise ValidationError(f"Title must be at most {TITLE_MAX} characters.", field='title')
    return title


def clean_category(category):
    if category is None:
        return None
    if not isinstance(category, str):
        raise ValidationError("Category must be a string.", field='category')
    category = category.strip()
    if len(category) > CATEGORY_MAX:
        raise ValidationError(f"Category must be at most {CATEGORY_MAX} characters.", field='category')
    return category or None


def expected_version(patch):
    version = patch.get('version')
    if version is None:
        return None
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValidationError("version must be an integer.", field='version')
    return version


def resolve_patch(template, patch):
    """
    Compute (title, category, questions) resulting from `patch` applied on
    top of the template's current values. Does not touch the row.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Patch must be an object.", field='patch')
    unknown = set(patch) - PATCH_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}.", field='patch')
    if not set(patch) - {'version'}:
        raise ValidationError("Nothing to update.", field='patch')

    title = clean_title(patch['title']) if 'title' in patch else template.title
    category = clean_category(patch['category']) if 'category' in patch else template.category

    questions = template.question_list
    if 'questions' in patch:
        questions = parse_questions(patch['questions'], existing=questions)
    if 'question_texts' in patch:
        questions = apply_question_texts(questions, patch['question_texts'])

    return title, category, questions


def system_ancestor_id(template):
    """Forks are one hop deep: a fork of a fork points at the system template it came from."""
    if template.owner.is_system:
        return template.id
    return template.parent_template_id


class TemplateService:
    @staticmethod
    def get_template(template_id):
        template = db.session.get(QuestionnaireTemplate, str(template_id)) if template_id else None
        if not template:
            raise NotFound(f"Template {template_id} not found.", template_id=template_id)
        return template

    @staticmethod
    def get_visible_template(template_id, coach_id):
        template = TemplateService.get_template(template_id)
        if not template.is_visible_to(coach_id):
            raise Forbidden("This template belongs to another coach.", template_id=template.id)
        return template

    @staticmethod
    def list_templates_visible_to(coach_id):
        """
        All system templates plus the coach's own, system first and then by
        creation time. The id tiebreak keeps pages stable.
        """
        coach_id = require_id(coach_id, 'coach_id')
        return QuestionnaireTemplate.query.filter(
            or_(
                QuestionnaireTemplate.owner_kind == OWNER_SYSTEM,
                and_(
                    QuestionnaireTemplate.owner_kind == OWNER_COACH,
                    QuestionnaireTemplate.coach_id == coach_id
                )
            )
        ).order_by(
            case((QuestionnaireTemplate.owner_kind == OWNER_SYSTEM, 0), else_=1),
            QuestionnaireTemplate.created_at.asc(),
            QuestionnaireTemplate.id.asc()
        ).all()

    @staticmethod
    def custom_version_parent_ids(coach_id):
        """Ids of system templates this coach has already forked at least once."""
        rows = db.session.query(QuestionnaireTemplate.parent_template_id).filter(
            QuestionnaireTemplate.owner_kind == OWNER_COACH,
            QuestionnaireTemplate.coach_id == str(coach_id),
            QuestionnaireTemplate.parent_template_id.isnot(None)
        ).distinct().all()
        return {row[0] for row in rows}

    @staticmethod
    def create_coach_template(coach_id, title, questions, category=None):
        coach_id = require_id(coach_id, 'coach_id')
        template = QuestionnaireTemplate(
            title=clean_title(title),
            category=clean_category(category),
            questions=questions_to_json(parse_questions(questions)),
            owner_kind=OWNER_COACH,
            coach_id=coach_id,
            parent_template_id=None
        )
        db.session.add(template)
        db.session.commit()
        logger.info(f"Coach {coach_id} created template {template.id}")
        return template

    @staticmethod
    def create_system_template(title, questions, category=None):
        template = QuestionnaireTemplate(
            title=clean_title(title),
            category=clean_category(category),
            questions=questions_to_json(parse_questions(questions)),
            owner_kind=OWNER_SYSTEM,
            coach_id=None,
            parent_template_id=None
        )
        db.session.add(template)
        db.session.commit()
        logger.info(f"System template {template.id} created ({template.category})")
        return template

    @staticmethod
    def create_fork(source, coach_id, title, category, questions):
        """Write a new coach-owned copy. `questions` are already-parsed values."""
        coach_id = require_id(coach_id, 'coach_id')
        parent_id = system_ancestor_id(source)
        fork = QuestionnaireTemplate(
            title=title,
            category=category,
            questions=questions_to_json(questions),
            owner_kind=OWNER_COACH,
            coach_id=coach_id,
            parent_template_id=parent_id
        )
        db.session.add(fork)
        db.session.commit()
        logger.info(f"Coach {coach_id} forked template {source.id} into {fork.id} (parent {parent_id})")
        return fork

    @staticmethod
    def update_coach_template(template_id, coach_id, patch):
        coach_id = require_id(coach_id, 'coach_id')
        template = TemplateService.get_template(template_id)
        owner = template.owner
        if owner.is_system:
            raise Forbidden("System templates are read-only.", template_id=template.id)
        if not owner.is_coach(coach_id):
            raise Forbidden("This template belongs to another coach.", template_id=template.id)

        title, category, questions = resolve_patch(template, patch)
        version = expected_version(patch)
        if version is not None and version != template.version:
            logger.warning(f"Stale edit on template {template.id}: client v{version}, stored v{template.version}")
            raise Conflict(
                "Template was changed by another request; reload and retry.",
                template_id=template.id, current_version=template.version
            )

        template.title = title
        template.category = category
        # Always a fresh list: the JSON column is replaced whole, never patched in place
        template.questions = questions_to_json(questions)
        template.updated_at = get_now()
        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            logger.warning(f"Concurrent update lost the race on template {template_id}")
            raise Conflict(
                "Template was changed by another request; reload and retry.",
                template_id=template_id
            )

        logger.info(f"Coach {coach_id} updated template {template.id} (v{template.version})")
        return template

    @staticmethod
    def delete_coach_template(template_id, coach_id):
        coach_id = require_id(coach_id, 'coach_id')
        template = TemplateService.get_template(template_id)
        owner = template.owner
        if owner.is_system:
            raise Forbidden("System templates cannot be deleted.", template_id=template.id)
        if not owner.is_coach(coach_id):
            raise Forbidden("This template belongs to another coach.", template_id=template.id)

        in_use = Assignment.query.filter_by(source_template_id=template.id).count()
        if in_use:
            raise Conflict(
                f"Template is used by {in_use} assignment(s) and cannot be deleted.",
                template_id=template.id, assignment_count=in_use
            )

        db.session.delete(template)
        try:
            db.session.commit()
        except (IntegrityError, StaleDataError):
            db.session.rollback()
            raise Conflict("Template changed while deleting; reload and retry.", template_id=template_id)

        logger.info(f"Coach {coach_id} deleted template {template_id}")
