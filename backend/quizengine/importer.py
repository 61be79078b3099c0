"""Bulk import of questions from CSV.

Expected header: question, option1..option4, correct_option, explanation,
difficulty, category, points, time_limit. ``correct_option`` is 1..4 in the
sheet and stored 0..3.
"""

import csv
import io
import logging

from .config import EVENTS
from .errors import InvalidInput
from .question_bank import QuestionBank

logger = logging.getLogger(__name__)


def decode_upload(raw: bytes) -> str:
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        # fallback to latin-1 to avoid decode errors for weird encodings
        return raw.decode('latin-1')


def _int(value, default):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_row(row):
    """Turn one CSV row into question fields, or return (None, reason)."""
    text = (row.get('question') or '').strip()
    options = [(row.get(f'option{i}') or '').strip() for i in range(1, 5)]
    if not text or any(not o for o in options):
        return None, 'Missing question text or option'

    correct = _int(row.get('correct_option'), 0)
    if 1 <= correct <= 4:
        correct -= 1
    else:
        logger.warning('Invalid correct_option %r for %r, defaulting to 0', row.get('correct_option'), text[:50])
        correct = 0

    return {
        'question_text': text,
        'options': options,
        'correct_option': correct,
        'explanation': (row.get('explanation') or '').strip(),
        'difficulty': (row.get('difficulty') or 'medium').strip().lower(),
        'category': (row.get('category') or '').strip(),
        'points': _int(row.get('points'), 10) or 10,
        'time_limit': _int(row.get('time_limit'), 30) or 30,
    }, None


def import_questions_csv(db, event, content):
    if event not in EVENTS:
        raise InvalidInput(f'Unknown event {event!r}', events=list(EVENTS))
    bank = QuestionBank(db)
    reader = csv.DictReader(io.StringIO(content))
    if not reader.fieldnames or 'question' not in [f.strip() for f in reader.fieldnames]:
        raise InvalidInput('CSV must have a header row with a "question" column')

    created = 0
    skipped = 0
    errors = []
    # header is line 1
    for idx, row in enumerate(reader, start=2):
        row = {(k or '').strip(): v for k, v in row.items()}
        if not any((v or '').strip() for v in row.values() if isinstance(v, str)):
            skipped += 1
            continue
        fields, reason = parse_row(row)
        if fields is None:
            errors.append({'line': idx, 'reason': reason})
            continue
        bank.add(event, commit=False, **fields)
        created += 1

    if created == 0:
        db.rollback()
        raise InvalidInput('No valid questions found in CSV file', errors=errors)
    db.commit()
    logger.info('Imported %s questions for %s (%s skipped, %s errors)', created, event, skipped, len(errors))
    return {'created': created, 'skipped': skipped, 'errors': errors, 'event': event}
