"""
Scoring engine – deterministic marks from an exam's answer key.

All-or-nothing per question: the question's marks are awarded when the selected
option is flagged correct, otherwise nothing. Unknown question or option ids
contribute zero and never raise.
"""
from .errors import ValidationError

_QUESTION_KEYS = ('question_id', 'questionId')
_OPTION_KEYS = ('selected_option_id', 'selectedOptionId')


def _coerce_id(value):
    """Ids arrive as ints or numeric strings; anything else is unmatched."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _pick(entry, keys):
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def normalize_answers(payload):
    """
    Validate a client answer payload.

    Accepts ``None`` (no answers) or a list of mappings carrying a question id
    and a selected option id. Returns a list of
    ``{'question_id': ..., 'selected_option_id': ...}`` with ids coerced where
    possible; entries without a selected option are dropped.

    Raises ValidationError for anything that is not a list of mappings.
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValidationError('answers must be a list')

    normalized = []
    for position, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise ValidationError(f'answer #{position + 1} must be an object')
        question_id = _pick(entry, _QUESTION_KEYS)
        if question_id is None:
            raise ValidationError(f'answer #{position + 1} is missing question_id')
        option_id = _pick(entry, _OPTION_KEYS)
        if option_id in (None, ''):
            continue
        normalized.append({
            'question_id': _coerce_id(question_id),
            'selected_option_id': _coerce_id(option_id),
        })
    return normalized


def build_answer_key(exam):
    """{question_id: (marks, frozenset(correct option ids))}"""
    key = {}
    for question in exam.questions.prefetch_related('options'):
        correct = frozenset(o.id for o in question.options.all() if o.is_correct)
        key[question.id] = (question.marks, correct)
    return key


def score_answers(answer_key, answers):
    """
    Sum the marks of correctly answered questions.

    A question answered more than once is judged on its last answer, so the
    same question can never be credited twice.
    """
    latest = {}
    for answer in answers:
        latest[answer.get('question_id')] = answer.get('selected_option_id')

    total = 0
    for question_id, option_id in latest.items():
        entry = answer_key.get(question_id)
        if entry is None:
            continue
        marks, correct_options = entry
        if option_id in correct_options:
            total += marks
    return total


def score(exam, answers):
    return score_answers(build_answer_key(exam), answers)


def recordable_answers(answer_key, answers):
    """Answers whose question belongs to the exam, in submission order."""
    return [a for a in answers if a.get('question_id') in answer_key]
