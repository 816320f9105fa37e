import logging

from coachdesk.errors import Forbidden
from coachdesk.models import OWNER_SYSTEM, OWNER_COACH
from coachdesk.services.template_service import TemplateService, require_id, resolve_patch

logger = logging.getLogger(__name__)


class ForkService:
    @staticmethod
    def resolve_for_edit(template_id, coach_id, patch):
        """
        Apply an edit request from `coach_id` to a template.

        - Own template: mutated in place.
        - System template: left untouched; a new template owned by the coach
          is created from the patched values, falling back to the system
          template's current values for anything the patch omits.
        - Another coach's template: Forbidden.

        Returns the resulting template; a fork is recognisable by its new id.
        Forking is not memoized: editing the same system template twice gives
        two sibling forks.
        """
        coach_id = require_id(coach_id, 'coach_id')
        template = TemplateService.get_template(template_id)
        owner = template.owner

        if owner.kind == OWNER_COACH:
            if not owner.is_coach(coach_id):
                logger.warning(f"Coach {coach_id} tried to edit template {template.id} of coach {owner.coach_id}")
                raise Forbidden("This template belongs to another coach.", template_id=template.id)
            return TemplateService.update_coach_template(template.id, coach_id, patch)

        if owner.kind == OWNER_SYSTEM:
            title, category, questions = resolve_patch(template, patch)
            fork = TemplateService.create_fork(template, coach_id, title, category, questions)
            return fork

        raise TypeError(f"Unhandled template owner kind: {owner.kind!r}")
