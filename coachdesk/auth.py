from datetime import timedelta
from functools import wraps
from flask import current_app, request
from flask_login import LoginManager, UserMixin, current_user
import jwt

from coachdesk.models import get_now
from coachdesk.utils import api_response

ROLE_COACH = 'coach'
ROLE_TRAINEE = 'trainee'
ROLES = (ROLE_COACH, ROLE_TRAINEE)

login_manager = LoginManager()


class Principal(UserMixin):
    """
    A verified caller. Identities live with the external session provider;
    this app only sees the id and role carried by the bearer token.
    """

    def __init__(self, principal_id, role):
        self.id = str(principal_id)
        self.role = role

    def get_id(self):
        return f"{self.role}:{self.id}"

    @property
    def is_coach(self):
        return self.role == ROLE_COACH

    @property
    def is_trainee(self):
        return self.role == ROLE_TRAINEE


def issue_token(principal_id, role, expires_in=None):
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if expires_in is None:
        expires_in = timedelta(hours=current_app.config['JWT_EXPIRATION_HOURS'])
    payload = {
        'sub': str(principal_id),
        'role': role,
        'exp': get_now() + expires_in
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm="HS256")


@login_manager.request_loader
def load_principal_from_request(req):
    auth_header = req.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None

    token = auth_header.split(" ", 1)[1].strip()
    try:
        data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=["HS256"])
    except jwt.InvalidTokenError as e:
        current_app.logger.warning(f"Rejected bearer token on {req.path}: {e}")
        return None

    if data.get('role') not in ROLES or not data.get('sub'):
        current_app.logger.warning(f"Bearer token without usable identity on {req.path}")
        return None
    return Principal(data['sub'], data['role'])


@login_manager.unauthorized_handler
def unauthorized():
    return api_response(
        success=False,
        error={'type': 'unauthorized', 'message': 'Missing or invalid token.', 'details': {}},
        status=401
    )


def role_required(role):
    """Authenticated caller with the given role; anything else is 401/403."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if current_user.role != role:
                current_app.logger.warning(
                    f"{current_user.role} {current_user.id} denied on {request.endpoint} (needs {role})"
                )
                return api_response(
                    success=False,
                    error={'type': 'forbidden', 'message': f'Only a {role} can do this.', 'details': {}},
                    status=403
                )
            return f(*args, **kwargs)
        return decorated
    return decorator


coach_required = role_required(ROLE_COACH)
trainee_required = role_required(ROLE_TRAINEE)
