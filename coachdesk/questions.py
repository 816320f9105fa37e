"""
Question values shared by templates and assignments.

Questions are stored as plain JSON lists on the template and assignment rows
and are rebuilt into immutable `Question` values whenever they cross a
service boundary, so no two records ever share a mutable question object.
"""
import uuid
from dataclasses import dataclass

from coachdesk.errors import ValidationError

KIND_RATING = 'rating'
KIND_OPEN = 'open'
QUESTION_KINDS = (KIND_RATING, KIND_OPEN)

RATING_MIN = 1
RATING_MAX = 10

QUESTION_FIELDS = {'id', 'kind', 'text'}


@dataclass(frozen=True)
class Question:
    id: str
    kind: str
    text: str

    @classmethod
    def from_dict(cls, data):
        return cls(id=str(data['id']), kind=data['kind'], text=data['text'])

    def to_dict(self):
        return {'id': self.id, 'kind': self.kind, 'text': self.text}

    def with_text(self, text):
        return Question(id=self.id, kind=self.kind, text=text)


def new_question_id():
    return str(uuid.uuid4())


def questions_from_json(raw):
    return [Question.from_dict(item) for item in (raw or [])]


def questions_to_json(questions):
    """Fresh list of fresh dicts, safe to hand to a JSON column."""
    return [q.to_dict() for q in questions]


def _clean_text(value, index):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"Question #{index + 1} needs a non-empty text.",
            field='questions', index=index
        )
    return value.strip()


def parse_questions(items, existing=None):
    """
    Build an ordered list of Question values from client input.

    Each item is {id?, kind?, text?}. When `existing` (a list of the
    questions currently on the template) holds a question with the same id,
    a missing kind or text falls back to that question, which is how a text
    edit keeps the question identity. A known id keeps its kind for good.
    Items without an id are new questions and get a fresh id; they must
    declare their kind.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one question is required.", field='questions')

    previous_by_id = {q.id: q for q in (existing or [])}
    questions = []
    seen = set()

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(
                f"Question #{index + 1} must be an object.",
                field='questions', index=index
            )
        unknown = set(item) - QUESTION_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown question fields: {', '.join(sorted(unknown))}.",
                field='questions', index=index
            )

        question_id = item.get('id')
        if question_id is not None:
            if not isinstance(question_id, (str, int)) or isinstance(question_id, bool) or not str(question_id).strip():
                raise ValidationError(
                    f"Question #{index + 1} has an invalid id.",
                    field='questions', index=index
                )
            question_id = str(question_id).strip()
        previous = previous_by_id.get(question_id) if question_id else None

        kind = item.get('kind')
        if kind is None:
            if previous is None:
                raise ValidationError(
                    f"Question #{index + 1} needs a kind ('rating' or 'open').",
                    field='questions', index=index
                )
            kind = previous.kind
        if kind not in QUESTION_KINDS:
            raise ValidationError(
                f"Question #{index + 1} has an unknown kind '{kind}'.",
                field='questions', index=index
            )
        if previous is not None and kind != previous.kind:
            raise ValidationError(
                f"Question '{question_id}' cannot change kind; add it as a new question instead.",
                field='questions', index=index, question_id=question_id
            )

        text = item.get('text')
        if text is None and previous is not None:
            text = previous.text
        text = _clean_text(text, index)

        if question_id is None:
            question_id = new_question_id()
        if question_id in seen:
            raise ValidationError(
                f"Duplicate question id '{question_id}'.",
                field='questions', question_id=question_id
            )
        seen.add(question_id)
        questions.append(Question(id=question_id, kind=kind, text=text))

    return questions


def apply_question_texts(questions, texts):
    """Return a new question list with single-question text edits applied."""
    if not isinstance(texts, dict) or not texts:
        raise ValidationError("question_texts must be a non-empty object.", field='question_texts')

    known = {q.id for q in questions}
    for question_id in texts:
        if question_id not in known:
            raise ValidationError(
                f"Question '{question_id}' does not exist on this template.",
                field='question_texts', question_id=question_id
            )

    updated = []
    for index, question in enumerate(questions):
        if question.id in texts:
            question = question.with_text(_clean_text(texts[question.id], index))
        updated.append(question)
    return updated
