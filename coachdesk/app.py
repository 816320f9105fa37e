import os
import logging
try:
    from dotenv import load_dotenv
    load_dotenv() # Load env vars before anything else
except ImportError:
    pass # In production (Vercel), env vars are injected directly.

from datetime import timedelta
import click
from flask import Flask, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_migrate import Migrate

from coachdesk.auth import login_manager, issue_token, ROLES
from coachdesk.errors import ServiceError
from coachdesk.models import db
from coachdesk.utils import api_response


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _database_url(app):
    database_url = os.environ.get('DATABASE_URL')
    if database_url and database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if not database_url:
        database_url = f"sqlite:///{os.path.join(app.instance_path, 'coachdesk.db')}"
    return database_url


def _configure_logging(app):
    level_name = str(app.config['LOG_LEVEL']).upper()
    level = getattr(logging, level_name, logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger('coachdesk').setLevel(level)
    app.logger.setLevel(level)


def create_app(test_config=None):
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # --- CONFIGURATION ---
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'coachdesk-dev-key')
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_url(app)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    app.config['JWT_EXPIRATION_HOURS'] = int(os.environ.get('JWT_EXPIRATION_HOURS', 24 * 7))
    app.config['SEED_SYSTEM_TEMPLATES'] = _env_flag('SEED_SYSTEM_TEMPLATES', True)

    if test_config:
        app.config.update(test_config)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///'):
        try:
            os.makedirs(app.instance_path, exist_ok=True)
        except OSError:
            app.logger.warning(f"Instance folder {app.instance_path} is not writable")

    _configure_logging(app)

    # --- INITIALIZE EXTENSIONS ---
    db.init_app(app)
    Migrate(app, db)
    login_manager.init_app(app)

    # --- ERROR HANDLERS ---
    @app.errorhandler(ServiceError)
    def service_error(error):
        db.session.rollback()
        app.logger.info(f"{error.error_type} on {request.method} {request.path}: {error.message}")
        return api_response(success=False, error=error.to_dict(), status=error.status_code)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return api_response(
            success=False,
            error={'type': 'http_error', 'message': error.description, 'details': {}},
            status=error.code
        )

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception(f"Unhandled error on {request.method} {request.path}: {error}")
        return api_response(
            success=False,
            error={'type': 'internal_error', 'message': 'Internal Server Error', 'details': {}},
            status=500
        )

    # --- REGISTER BLUEPRINTS ---
    from coachdesk.routes.templates import templates_bp
    from coachdesk.routes.assignments import assignments_bp
    from coachdesk.routes.trainee import trainee_bp
    from coachdesk.routes.notifications import notifications_bp

    app.register_blueprint(templates_bp)
    app.register_blueprint(assignments_bp)
    app.register_blueprint(trainee_bp)
    app.register_blueprint(notifications_bp)

    @app.route('/ping')
    def ping():
        return "pong"

    # --- CLI ---
    @app.cli.command('seed-templates')
    def seed_templates_command():
        """Insert the default system questionnaires that are missing."""
        from coachdesk.seed_system_templates import seed_system_templates
        created = seed_system_templates()
        click.echo(f"{len(created)} system template(s) created.")

    @app.cli.command('issue-token')
    @click.argument('role', type=click.Choice(ROLES))
    @click.argument('principal_id')
    @click.option('--hours', type=int, default=None, help='Token lifetime, defaults to JWT_EXPIRATION_HOURS.')
    def issue_token_command(role, principal_id, hours):
        """Mint a bearer token for a coach or trainee id."""
        expires_in = timedelta(hours=hours) if hours else None
        click.echo(issue_token(principal_id, role, expires_in=expires_in))

    # --- TABLE CREATION / SEEDING ---
    # Fresh databases (SQLite, ephemeral deploys) get their tables here;
    # Flask-Migrate handles schema changes on long-lived ones.
    with app.app_context():
        db.create_all()
        if app.config['SEED_SYSTEM_TEMPLATES']:
            from coachdesk.seed_system_templates import seed_system_templates
            seed_system_templates()

    return app
