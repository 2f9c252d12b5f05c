"""Shift code definitions and lookups."""
from roster.utils.validation import text_value


DEFAULT_SHIFT_DEFINITIONS = {
    'M2': '8 AM – 5 PM',
    'M3': '9 AM – 6 PM',
    'M4': '10 AM – 7 PM',
    'D1': '12 PM – 9 PM',
    'D2': '1 PM – 10 PM',
    'DO': 'OFF',
    'SL': 'Sick Leave',
    'CL': 'Casual Leave',
    'EL': 'Emergency Leave',
    'HL': 'Holiday Leave',
    '': 'N/A',
}

# Empty cell = nothing assigned
EMPTY_SHIFT = ''


def normalize_code(code):
    return text_value(code, 'Shift code').upper()


def shift_definitions_for(settings):
    """Tenant overrides if any, otherwise the defaults (always a fresh dict)."""
    custom = (settings or {}).get('shift_definitions')
    if custom:
        return dict(custom)
    return dict(DEFAULT_SHIFT_DEFINITIONS)


def get_shift_label(code, definitions=None):
    if not code or code in ('N/A', 'Empty'):
        return 'N/A'
    definitions = definitions or DEFAULT_SHIFT_DEFINITIONS
    return definitions.get(code, code)


def is_valid_shift_code(code, definitions=None):
    """Empty is always valid (unassigned); anything else must be defined."""
    if code == EMPTY_SHIFT:
        return True
    definitions = definitions or DEFAULT_SHIFT_DEFINITIONS
    return code in definitions
