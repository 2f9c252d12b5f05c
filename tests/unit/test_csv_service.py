"""
Unit tests for CSV parsing and the import merge rules.
"""

import copy
import pytest

from roster.exceptions import ValidationError
from roster.models import empty_roster
from roster.services import roster_store
from roster.services.csv_service import parse_roster_csv, merge_import


CSV_TEXT = (
    "date,employee_id,name,team,shift_code\n"
    "2025-11-03,E001,Ana Ruiz,Front Desk,m2\n"
    "04/11/2025,E001,Ana Ruiz,Front Desk,DO\n"
    "2025-11-03,E002,Luis Paz,Kitchen,D1\n"
)


class TestParse:
    """Tests for parse_roster_csv."""

    def test_parses_header_and_both_date_formats(self):
        rows = parse_roster_csv(CSV_TEXT)
        assert len(rows) == 3
        assert rows[0] == {
            'date': '2025-11-03', 'employee_id': 'E001', 'name': 'Ana Ruiz',
            'team': 'Front Desk', 'shift_code': 'M2',
        }
        assert rows[1]['date'] == '2025-11-04'

    def test_header_is_optional(self):
        rows = parse_roster_csv("2025-11-03,E001,Ana Ruiz,Front Desk,M2\n")
        assert len(rows) == 1

    def test_blank_team_goes_to_unassigned(self):
        rows = parse_roster_csv("2025-11-03,E001,Ana Ruiz,,M2\n")
        assert rows[0]['team'] == roster_store.UNASSIGNED_TEAM

    def test_rejects_whole_file_and_lists_rows(self):
        text = (
            "date,employee_id,name,team,shift_code\n"
            "2025-11-03,E001,Ana Ruiz,Front Desk,M2\n"
            "not-a-date,E002,Luis Paz,Kitchen,D1\n"
            "2025-11-03,E003,Marta Gil,Kitchen\n"
            "2025-11-03,E004,Pia,Kitchen,XX\n"
        )
        with pytest.raises(ValidationError) as exc_info:
            parse_roster_csv(text)

        errors = exc_info.value.payload['errors']
        assert exc_info.value.status_code == 400
        assert any(e.startswith('Row 3:') for e in errors)
        assert any(e.startswith('Row 4:') for e in errors)
        assert any(e.startswith('Row 5:') for e in errors)
        assert not any(e.startswith('Row 2:') for e in errors)

    def test_unknown_code_checked_against_tenant_definitions(self):
        with pytest.raises(ValidationError):
            parse_roster_csv("2025-11-03,E001,Ana,Front Desk,M2\n", {'N1': 'Night'})

    def test_empty_file(self):
        with pytest.raises(ValidationError):
            parse_roster_csv('   ')


class TestMerge:
    """Tests for merge_import."""

    def test_first_import_fills_both_documents(self):
        data, baseline = empty_roster(), empty_roster()
        stats = merge_import(data, baseline, parse_roster_csv(CSV_TEXT))

        assert data == baseline
        assert data['dates'] == ['2025-11-03', '2025-11-04']
        assert roster_store.get_shift(data, 'E001', '2025-11-04') == 'DO'
        assert roster_store.get_shift(data, 'E002', '2025-11-04') == ''
        assert stats['employees_added'] == 2
        assert stats['dates_added'] == 2

    def test_reimport_is_idempotent(self):
        data, baseline = empty_roster(), empty_roster()
        merge_import(data, baseline, parse_roster_csv(CSV_TEXT))
        snapshot = (copy.deepcopy(data), copy.deepcopy(baseline))

        stats = merge_import(data, baseline, parse_roster_csv(CSV_TEXT))

        assert (data, baseline) == snapshot
        assert stats['cells_updated'] == 0
        assert stats['employees_added'] == 0

    def test_admin_edits_survive_reimport(self):
        data, baseline = empty_roster(), empty_roster()
        merge_import(data, baseline, parse_roster_csv(CSV_TEXT))

        # admin edit on the working copy only
        data['teams']['Front Desk'][0]['schedule'][0] = 'SL'

        updated = CSV_TEXT.replace('2025-11-03,E001,Ana Ruiz,Front Desk,m2', '2025-11-03,E001,Ana Ruiz,Front Desk,M4')
        updated = updated.replace('2025-11-03,E002,Luis Paz,Kitchen,D1', '2025-11-03,E002,Luis Paz,Kitchen,D2')
        stats = merge_import(data, baseline, parse_roster_csv(updated))

        assert roster_store.get_shift(data, 'E001', '2025-11-03') == 'SL'
        assert roster_store.get_shift(baseline, 'E001', '2025-11-03') == 'M4'
        assert roster_store.get_shift(data, 'E002', '2025-11-03') == 'D2'
        assert stats['cells_kept'] == 1
        assert stats['cells_updated'] == 1

    def test_duplicate_rows_last_wins(self):
        data, baseline = empty_roster(), empty_roster()
        rows = parse_roster_csv(
            "2025-11-03,E001,Ana,Front Desk,M2\n"
            "2025-11-03,E001,Ana,Front Desk,D1\n"
        )
        merge_import(data, baseline, rows)
        assert roster_store.get_shift(data, 'E001', '2025-11-03') == 'D1'

    def test_ids_match_regardless_of_case(self):
        data, baseline = empty_roster(), empty_roster()
        merge_import(data, baseline, parse_roster_csv(CSV_TEXT))

        stats = merge_import(data, baseline, parse_roster_csv("2025-11-05,e001,Ana Ruiz,Front Desk,M3\n"))

        assert stats['employees_added'] == 0
        assert [e['id'] for e in roster_store.all_employees(data)] == ['E001', 'E002']
        assert roster_store.get_shift(data, 'E001', '2025-11-05') == 'M3'
        assert roster_store.get_shift(baseline, 'E001', '2025-11-05') == 'M3'

    def test_new_id_keeps_first_spelling(self):
        data, baseline = empty_roster(), empty_roster()
        rows = parse_roster_csv(
            "2025-11-03,n001,Nora,Night Desk,M2\n"
            "2025-11-04,N001,Nora,Night Desk,D1\n"
        )
        merge_import(data, baseline, rows)

        assert [e['id'] for e in roster_store.all_employees(data)] == ['n001']
        assert data['teams']['Night Desk'][0]['schedule'] == ['M2', 'D1']
