import pytest

from coachdesk.app import create_app
from coachdesk.auth import issue_token, ROLE_COACH, ROLE_TRAINEE
from coachdesk.models import db
from coachdesk.services.template_service import TemplateService


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SEED_SYSTEM_TEMPLATES': False,
        'LOG_LEVEL': 'WARNING'
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for tests that call services directly (not for HTTP tests)."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def coach_headers(app):
    def make(coach_id='c1'):
        with app.app_context():
            token = issue_token(coach_id, ROLE_COACH)
        return {'Authorization': f"Bearer {token}"}
    return make


@pytest.fixture
def trainee_headers(app):
    def make(trainee_id='t1'):
        with app.app_context():
            token = issue_token(trainee_id, ROLE_TRAINEE)
        return {'Authorization': f"Bearer {token}"}
    return make


SYSTEM_QUESTIONS = [
    {'id': 'q1', 'kind': 'rating', 'text': 'Energy level?'},
    {'id': 'q2', 'kind': 'open', 'text': 'What went well?'}
]

COACH_QUESTIONS = [
    {'id': 'r1', 'kind': 'rating', 'text': 'Confidence during the game'},
    {'id': 'r2', 'kind': 'open', 'text': 'Best action of the game?'}
]


@pytest.fixture
def system_template(ctx):
    return TemplateService.create_system_template("Daily check-in", SYSTEM_QUESTIONS, category='day_opening')


@pytest.fixture
def coach_template(ctx):
    return TemplateService.create_coach_template('c1', "Post-game review", COACH_QUESTIONS, category='post_game')


@pytest.fixture
def system_template_id(app):
    """Same system template, created outside any long-lived context for HTTP tests."""
    with app.app_context():
        template = TemplateService.create_system_template("Daily check-in", SYSTEM_QUESTIONS, category='day_opening')
        return template.id
