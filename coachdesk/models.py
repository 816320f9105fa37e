from datetime import datetime, timezone
from dataclasses import dataclass
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
import sqlite3
import uuid

from coachdesk.questions import questions_from_json


def get_now():
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign keys off; PostgreSQL always enforces them
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Owner kinds (closed set, see Owner below)
OWNER_SYSTEM = 'system'
OWNER_COACH = 'coach'

# Assignment lifecycle
STATUS_PENDING = 'pending'
STATUS_ANSWERED = 'answered'
ASSIGNMENT_STATUSES = (STATUS_PENDING, STATUS_ANSWERED)


@dataclass(frozen=True)
class Owner:
    """Who owns a template: the shared system library or exactly one coach."""
    kind: str
    coach_id: str = None

    @classmethod
    def system(cls):
        return cls(OWNER_SYSTEM)

    @classmethod
    def coach(cls, coach_id):
        return cls(OWNER_COACH, str(coach_id))

    @property
    def is_system(self):
        return self.kind == OWNER_SYSTEM

    def is_coach(self, coach_id):
        return self.kind == OWNER_COACH and self.coach_id == str(coach_id)

    def to_dict(self):
        return {'kind': self.kind, 'coach_id': self.coach_id}


class QuestionnaireTemplate(db.Model):
    __tablename__ = 'questionnaire_template'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(50), nullable=True) # day_opening, post_game, ... (free text for coach templates)
    questions = db.Column(db.JSON, nullable=False) # [{"id": "...", "kind": "rating|open", "text": "..."}]

    owner_kind = db.Column(db.String(10), nullable=False, default=OWNER_COACH)
    coach_id = db.Column(db.String(64), nullable=True, index=True) # Null for system templates
    parent_template_id = db.Column(db.String(36), db.ForeignKey('questionnaire_template.id'), nullable=True, index=True)

    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=get_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=get_now, nullable=False)

    # Optimistic locking: every UPDATE is conditional on the version read
    __mapper_args__ = {'version_id_col': version}

    parent = db.relationship('QuestionnaireTemplate', remote_side=[id], backref='forks')

    @property
    def owner(self):
        if self.owner_kind == OWNER_SYSTEM:
            return Owner.system()
        if self.owner_kind == OWNER_COACH:
            return Owner.coach(self.coach_id)
        raise TypeError(f"Unknown template owner kind: {self.owner_kind!r}")

    @property
    def question_list(self):
        return questions_from_json(self.questions)

    def is_visible_to(self, coach_id):
        owner = self.owner
        return owner.is_system or owner.is_coach(coach_id)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'questions': [q.to_dict() for q in self.question_list],
            'owner': self.owner.to_dict(),
            'parent_template_id': self.parent_template_id,
            'version': self.version,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class Assignment(db.Model):
    __tablename__ = 'assignment'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    coach_id = db.Column(db.String(64), nullable=False, index=True)
    trainee_id = db.Column(db.String(64), nullable=False, index=True)
    source_template_id = db.Column(db.String(36), db.ForeignKey('questionnaire_template.id'), nullable=False, index=True)

    # Snapshot taken at assignment time, never re-read from the template
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(50), nullable=True)
    questions = db.Column(db.JSON, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING) # pending, answered
    assigned_at = db.Column(db.DateTime, default=get_now, nullable=False, index=True)
    answered_at = db.Column(db.DateTime, nullable=True)

    source_template = db.relationship('QuestionnaireTemplate', backref='assignments')
    answer_set = db.relationship('AnswerSet', back_populates='assignment', uselist=False)

    @property
    def question_list(self):
        return questions_from_json(self.questions)

    def to_dict(self):
        return {
            'id': self.id,
            'coach_id': self.coach_id,
            'trainee_id': self.trainee_id,
            'source_template_id': self.source_template_id,
            'title': self.title,
            'category': self.category,
            'questions': [q.to_dict() for q in self.question_list],
            'status': self.status,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None,
            'answered_at': self.answered_at.isoformat() if self.answered_at else None
        }


class AnswerSet(db.Model):
    __tablename__ = 'answer_set'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    # Unique: one answer set per assignment, backs the pending -> answered flip
    assignment_id = db.Column(db.String(36), db.ForeignKey('assignment.id'), nullable=False, unique=True)
    trainee_id = db.Column(db.String(64), nullable=False, index=True)
    answers = db.Column(db.JSON, nullable=False) # {"<question_id>": {"rating": 8} | {"text": "..."}}
    submitted_at = db.Column(db.DateTime, default=get_now, nullable=False)

    assignment = db.relationship('Assignment', back_populates='answer_set')

    def to_dict(self):
        return {
            'id': self.id,
            'assignment_id': self.assignment_id,
            'trainee_id': self.trainee_id,
            'answers': dict(self.answers or {}),
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None
        }


class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.String(64), nullable=False, index=True)
    recipient_role = db.Column(db.String(20), nullable=False) # coach, trainee
    type = db.Column(db.String(50), nullable=False) # questionnaire_assigned
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.String(500), nullable=True)
    assignment_id = db.Column(db.String(36), db.ForeignKey('assignment.id'), nullable=True)
    read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=get_now)
