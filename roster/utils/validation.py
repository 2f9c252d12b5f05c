"""Coercion of submitted values (JSON bodies and form posts)."""
from flask import request

from roster.exceptions import ValidationError

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off', '')


def get_payload():
    """
    Request body as a mapping: the JSON object if one was sent, else the form.

    Raises:
        ValidationError: if the JSON body is not an object (list, string, number)
    """
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def text_value(value, field, strip=True) -> str:
    """
    Coerce a submitted value to a string.

    None becomes ''. Numbers are converted (JSON clients send ids like 123).
    Booleans, lists and objects are rejected.

    Raises:
        ValidationError: if the value is not text or a number
    """
    if value is None:
        return ''
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f'{field} must be text')
    value = str(value)
    return value.strip() if strip else value


def optional_text(value, field):
    """Like text_value, but blank values become None."""
    return text_value(value, field) or None


def bool_value(value, field) -> bool:
    """
    Parse a boolean sent as JSON true/false, 0/1 or a form string.

    Raises:
        ValidationError: for anything else ("maybe", lists, ...)
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise ValidationError(f'{field} must be true or false')
