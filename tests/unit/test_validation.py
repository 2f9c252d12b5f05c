"""
Unit tests for submitted value coercion.
"""

import pytest

from roster.exceptions import ValidationError
from roster.utils.validation import text_value, optional_text, bool_value


class TestTextValue:

    @pytest.mark.parametrize('value, expected', [
        ('  E001 ', 'E001'),
        (123, '123'),
        (None, ''),
        ('', ''),
    ])
    def test_accepted(self, value, expected):
        assert text_value(value, 'Employee ID') == expected

    def test_strip_can_be_disabled(self):
        assert text_value(' secret ', 'Password', strip=False) == ' secret '

    @pytest.mark.parametrize('value', [True, ['E001'], {'id': 'E001'}])
    def test_rejected(self, value):
        with pytest.raises(ValidationError, match='Employee ID must be text'):
            text_value(value, 'Employee ID')

    def test_optional_text(self):
        assert optional_text('  ', 'Phone') is None
        assert optional_text(' 600 ', 'Phone') == '600'


class TestBoolValue:

    @pytest.mark.parametrize('value, expected', [
        (True, True), (False, False), (1, True), (0, False),
        ('true', True), ('FALSE', False), ('yes', True), ('off', False), ('', False),
    ])
    def test_accepted(self, value, expected):
        assert bool_value(value, 'active') is expected

    @pytest.mark.parametrize('value', ['maybe', 2, None, ['true']])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            bool_value(value, 'active')
