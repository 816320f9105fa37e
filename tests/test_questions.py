import pytest

from coachdesk.errors import ValidationError
from coachdesk.questions import (
    Question, parse_questions, apply_question_texts, questions_to_json, questions_from_json
)


def test_parse_keeps_order_and_ids():
    questions = parse_questions([
        {'id': 'q1', 'kind': 'rating', 'text': ' Energy? '},
        {'id': 'q2', 'kind': 'open', 'text': 'Notes'}
    ])
    assert [q.id for q in questions] == ['q1', 'q2']
    assert questions[0] == Question('q1', 'rating', 'Energy?')


def test_parse_generates_ids_for_new_questions():
    questions = parse_questions([{'kind': 'open', 'text': 'A'}, {'kind': 'open', 'text': 'B'}])
    assert questions[0].id and questions[1].id
    assert questions[0].id != questions[1].id


def test_parse_falls_back_to_existing_question():
    existing = [Question('q1', 'rating', 'Energy?')]
    questions = parse_questions([{'id': 'q1', 'text': 'Energy today?'}], existing=existing)
    assert questions == [Question('q1', 'rating', 'Energy today?')]

    questions = parse_questions([{'id': 'q1'}], existing=existing)
    assert questions == existing


def test_parse_rejects_kind_change_on_existing_question():
    existing = [Question('q1', 'rating', 'Energy?')]
    assert parse_questions([{'id': 'q1', 'kind': 'rating'}], existing=existing) == existing

    with pytest.raises(ValidationError) as excinfo:
        parse_questions([{'id': 'q1', 'kind': 'open'}], existing=existing)
    assert excinfo.value.details['question_id'] == 'q1'

    questions = parse_questions([{'kind': 'open', 'text': 'Energy?'}], existing=existing)
    assert questions[0].kind == 'open'
    assert questions[0].id != 'q1'


@pytest.mark.parametrize('items', [
    [],
    None,
    [{'kind': 'open', 'text': '   '}],
    [{'kind': 'scale', 'text': 'x'}],
    [{'text': 'no kind'}],
    [{'kind': 'open', 'text': 'x', 'weight': 2}],
    [{'id': 'a', 'kind': 'open', 'text': 'x'}, {'id': 'a', 'kind': 'open', 'text': 'y'}],
    ['not a dict'],
])
def test_parse_rejects_bad_input(items):
    with pytest.raises(ValidationError):
        parse_questions(items)


def test_apply_question_texts():
    questions = [Question('q1', 'rating', 'Energy?'), Question('q2', 'open', 'Notes')]
    updated = apply_question_texts(questions, {'q2': 'What went well?'})
    assert updated[1] == Question('q2', 'open', 'What went well?')
    assert questions[1].text == 'Notes'

    with pytest.raises(ValidationError):
        apply_question_texts(questions, {'q9': 'x'})
    with pytest.raises(ValidationError):
        apply_question_texts(questions, {'q1': ''})


def test_json_helpers_build_fresh_dicts():
    questions = [Question('q1', 'open', 'Notes')]
    first = questions_to_json(questions)
    second = questions_to_json(questions)
    first[0]['text'] = 'changed'
    assert second[0]['text'] == 'Notes'
    assert questions_from_json(second) == questions
