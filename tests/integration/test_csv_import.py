"""
Integration tests for CSV import and export through the admin API.
"""

import io


ACME = '/tenant/acme'

ROSTER_CSV = (
    "date,employee_id,name,team,shift_code\n"
    "2025-12-01,N001,Nora Diaz,Night Desk,D2\n"
    "2025-12-02,N001,Nora Diaz,Night Desk,DO\n"
    "2025-12-01,N002,Omar Sol,Night Desk,D1\n"
)


def _upload(client, text, filename='roster.csv'):
    return client.post(
        f'{ACME}/api/admin/csv/import',
        data={'file': (io.BytesIO(text.encode('utf-8')), filename)},
        content_type='multipart/form-data',
    )


def _roster(client):
    return client.get(f'{ACME}/api/admin/roster').get_json()


def _cell(roster, employee_id, iso_date):
    employee = next(e for e in roster['allEmployees'] if e['id'] == employee_id)
    return employee['schedule'][roster['dates'].index(iso_date)]


class TestImport:

    def test_import_into_empty_tenant(self, admin_client):
        response = _upload(admin_client, ROSTER_CSV)
        assert response.status_code == 200
        stats = response.get_json()['stats']
        assert stats['rows'] == 3
        assert stats['employees_added'] == 2

        roster = _roster(admin_client)
        assert roster['dates'] == ['2025-12-01', '2025-12-02']
        assert [e['id'] for e in roster['teams']['Night Desk']] == ['N001', 'N002']
        assert _cell(roster, 'N002', '2025-12-02') == ''

    def test_raw_body_with_bom(self, admin_client):
        body = ('\ufeff' + ROSTER_CSV).encode('utf-8')
        response = admin_client.post(f'{ACME}/api/admin/csv/import', data=body, content_type='text/csv')
        assert response.status_code == 200
        assert response.get_json()['stats']['rows'] == 3

    def test_reimport_is_idempotent(self, admin_client):
        _upload(admin_client, ROSTER_CSV)
        before = _roster(admin_client)

        response = _upload(admin_client, ROSTER_CSV)
        assert response.get_json()['stats']['cells_updated'] == 0
        assert _roster(admin_client) == before

    def test_admin_edit_survives_reimport(self, admin_client):
        _upload(admin_client, ROSTER_CSV)
        admin_client.post(f'{ACME}/api/admin/shifts',
                          json={'employee_id': 'N001', 'date': '2025-12-01', 'shift_code': 'SL'})

        updated = ROSTER_CSV.replace('2025-12-01,N001,Nora Diaz,Night Desk,D2', '2025-12-01,N001,Nora Diaz,Night Desk,M2')
        updated = updated.replace('2025-12-01,N002,Omar Sol,Night Desk,D1', '2025-12-01,N002,Omar Sol,Night Desk,M3')
        response = _upload(admin_client, updated)
        assert response.get_json()['stats']['cells_kept'] == 1

        roster = _roster(admin_client)
        assert _cell(roster, 'N001', '2025-12-01') == 'SL'
        assert _cell(roster, 'N002', '2025-12-01') == 'M3'

        # Reset brings back the imported value
        admin_client.post(f'{ACME}/api/admin/roster/reset')
        assert _cell(_roster(admin_client), 'N001', '2025-12-01') == 'M2'

    def test_invalid_file_changes_nothing(self, admin_client, roster1):
        before = _roster(admin_client)
        bad = ROSTER_CSV + "2025-12-03,N003,,Night Desk,D1\n"

        response = _upload(admin_client, bad)
        assert response.status_code == 400
        assert response.get_json()['errors'] == ['Row 5: employee name is required']
        assert _roster(admin_client) == before

    def test_tenant_shift_definitions_apply(self, admin_client):
        admin_client.post(f'{ACME}/api/admin/shift-definitions', json={'code': 'n1', 'label': 'Night 10 PM - 6 AM'})

        response = _upload(admin_client, "2025-12-01,N001,Nora Diaz,Night Desk,N1\n")
        assert response.status_code == 200

    def test_lowercase_ids_update_existing_employees(self, admin_client, roster1):
        response = _upload(admin_client, "2025-11-05,e001,Ana Ruiz,Front Desk,SL\n")
        assert response.status_code == 200
        assert response.get_json()['stats']['employees_added'] == 0

        roster = _roster(admin_client)
        assert len(roster['allEmployees']) == 3
        assert _cell(roster, 'E001', '2025-11-05') == 'SL'

    def test_import_requires_admin(self, employee_client):
        assert _upload(employee_client, ROSTER_CSV).status_code == 401


class TestExport:

    def test_export_round_trips(self, admin_client, roster1):
        response = admin_client.get(f'{ACME}/api/admin/csv/export')
        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment' in response.headers['Content-Disposition']

        lines = response.get_data(as_text=True).strip().split('\n')
        assert lines[0] == 'date,employee_id,name,team,shift_code'
        assert '2025-11-03,E001,Ana Ruiz,Front Desk,M2' in lines
        assert len(lines) == 1 + 3 * 3

        # Importing the export into the same tenant changes nothing
        before = _roster(admin_client)
        assert _upload(admin_client, response.get_data(as_text=True)).status_code == 200
        assert _roster(admin_client) == before

    def test_export_month_filter(self, admin_client, roster1):
        response = admin_client.get(f'{ACME}/api/admin/csv/export?month=2025-12')
        lines = response.get_data(as_text=True).strip().split('\n')
        assert lines == ['date,employee_id,name,team,shift_code']

    def test_export_invalid_month(self, admin_client, roster1):
        assert admin_client.get(f'{ACME}/api/admin/csv/export?month=december').status_code == 400

    def test_export_skips_inactive_employees(self, admin_client, roster1):
        admin_client.post(f'{ACME}/api/admin/employees/E003/deactivate')
        content = admin_client.get(f'{ACME}/api/admin/csv/export').get_data(as_text=True)
        assert 'E003' not in content
