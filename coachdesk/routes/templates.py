from flask import Blueprint, request
from flask_login import current_user

from coachdesk.auth import coach_required
from coachdesk.errors import ValidationError
from coachdesk.services.fork_service import ForkService
from coachdesk.services.template_service import TemplateService
from coachdesk.utils import api_response

templates_bp = Blueprint('templates', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.", field='body')
    return data


@templates_bp.route('/api/templates', methods=['GET'])
@coach_required
def list_templates():
    templates = TemplateService.list_templates_visible_to(current_user.id)
    forked_parents = TemplateService.custom_version_parent_ids(current_user.id)

    items = []
    for template in templates:
        item = template.to_dict()
        if template.owner.is_system:
            # Informational only; editing still forks again
            item['has_custom_version'] = template.id in forked_parents
        items.append(item)
    return api_response(data={'templates': items})


@templates_bp.route('/api/templates', methods=['POST'])
@coach_required
def create_template():
    data = _json_body()
    template = TemplateService.create_coach_template(
        current_user.id,
        data.get('title'),
        data.get('questions'),
        category=data.get('category')
    )
    return api_response(data={'template': template.to_dict()}, status=201)


@templates_bp.route('/api/templates/<template_id>', methods=['GET'])
@coach_required
def get_template(template_id):
    template = TemplateService.get_visible_template(template_id, current_user.id)
    return api_response(data={'template': template.to_dict()})


@templates_bp.route('/api/templates/<template_id>', methods=['PATCH'])
@coach_required
def edit_template(template_id):
    patch = _json_body()
    template = ForkService.resolve_for_edit(template_id, current_user.id, patch)
    forked = template.id != template_id
    return api_response(
        data={'template': template.to_dict(), 'forked': forked},
        status=201 if forked else 200
    )


@templates_bp.route('/api/templates/<template_id>', methods=['DELETE'])
@coach_required
def delete_template(template_id):
    TemplateService.delete_coach_template(template_id, current_user.id)
    return api_response(data={'deleted': template_id})
