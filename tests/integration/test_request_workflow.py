"""
Integration tests for shift change and swap requests.
"""

import pytest
from roster.models import ShiftModification, ScheduleRequest
from roster.services import roster_store


ACME = '/tenant/acme'


def _shift(session, tenant, employee_id, iso_date):
    session.expire_all()
    document = roster_store.load_document(session, tenant.id)
    return roster_store.get_shift(document.data, employee_id, iso_date)


def _submit_change(client, date='2025-11-03', requested_shift='D1', reason='Medical appointment'):
    return client.post(f'{ACME}/api/employee/requests/shift-change',
                       json={'date': date, 'requested_shift': requested_shift, 'reason': reason})


def _submit_swap(client, target='E002', date='2025-11-03', reason='Family event'):
    return client.post(f'{ACME}/api/employee/requests/swap',
                       json={'target_employee_id': target, 'date': date, 'reason': reason})


def _resolve(client, request_id, status, admin_message=None):
    payload = {'status': status}
    if admin_message:
        payload['admin_message'] = admin_message
    return client.post(f'{ACME}/api/admin/requests/{request_id}/status', json=payload)


@pytest.fixture
def e002_client(app, credential_e002, tenant1):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['employee'] = {'tenant_id': tenant1.id, 'employee_id': 'E002'}
    return client


class TestShiftChange:
    """Submitting and resolving shift change requests."""

    def test_submit(self, employee_client):
        response = _submit_change(employee_client)
        assert response.status_code == 201
        data = response.get_json()['request']
        assert data['status'] == 'pending'
        assert data['employee_id'] == 'E001'
        assert data['current_shift'] == 'M2'
        assert data['requested_shift'] == 'D1'
        assert data['team'] == 'Front Desk'

    def test_approve_applies_once(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_change(employee_client).get_json()['request']['id']

        response = _resolve(admin_client, request_id, 'approved', 'Enjoy')
        assert response.status_code == 200
        data = response.get_json()['request']
        assert data['status'] == 'approved'
        assert data['approved_by'] == 'alice'
        assert data['admin_message'] == 'Enjoy'
        assert _shift(session, tenant1, 'E001', '2025-11-03') == 'D1'

        records = session.query(ShiftModification).filter_by(tenant_id=tenant1.id).all()
        assert len(records) == 1
        assert records[0].source == 'shift_change'
        assert (records[0].old_shift, records[0].new_shift) == ('M2', 'D1')

        # A second decision is refused and changes nothing
        response = _resolve(admin_client, request_id, 'approved')
        assert response.status_code == 409
        assert response.get_json()['status'] == 'approved'

        response = _resolve(admin_client, request_id, 'rejected')
        assert response.status_code == 409
        assert session.query(ShiftModification).filter_by(tenant_id=tenant1.id).count() == 1

    def test_reject_leaves_roster_unchanged(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_change(employee_client).get_json()['request']['id']

        response = _resolve(admin_client, request_id, 'rejected', 'Short staffed')
        assert response.status_code == 200
        assert response.get_json()['request']['status'] == 'rejected'
        assert _shift(session, tenant1, 'E001', '2025-11-03') == 'M2'
        assert session.query(ShiftModification).filter_by(tenant_id=tenant1.id).count() == 0

    def test_same_shift_is_rejected(self, employee_client):
        response = _submit_change(employee_client, requested_shift='M2')
        assert response.status_code == 400

    @pytest.mark.parametrize('payload', [
        {'date': '2025-11-03', 'requested_shift': 'ZZ', 'reason': 'x'},
        {'date': '2026-01-01', 'requested_shift': 'D1', 'reason': 'x'},
        {'date': 'soon', 'requested_shift': 'D1', 'reason': 'x'},
        {'date': '2025-11-03', 'requested_shift': 'D1', 'reason': '   '},
    ])
    def test_invalid_submissions(self, employee_client, session, payload):
        response = employee_client.post(f'{ACME}/api/employee/requests/shift-change', json=payload)
        assert response.status_code == 400
        assert session.query(ScheduleRequest).count() == 0

    def test_approve_after_employee_deactivated(self, employee_client, admin_client):
        request_id = _submit_change(employee_client).get_json()['request']['id']
        admin_client.post(f'{ACME}/api/admin/employees/E001/deactivate')

        response = _resolve(admin_client, request_id, 'approved')
        assert response.status_code == 400

        pending = admin_client.get(f'{ACME}/api/admin/requests/pending').get_json()['requests']
        assert [r['id'] for r in pending] == [request_id]


    def test_approve_when_roster_already_matches(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_change(employee_client).get_json()['request']['id']
        admin_client.post(f'{ACME}/api/admin/shifts', json={'employee_id': 'E001', 'date': '2025-11-03', 'shift_code': 'D1'})

        response = _resolve(admin_client, request_id, 'approved')
        assert response.status_code == 200
        data = response.get_json()
        assert data['request']['status'] == 'approved'
        assert data['roster_changed'] is False
        assert 'nothing was changed' in data['message']

        # Only the admin edit is in the log
        records = session.query(ShiftModification).filter_by(tenant_id=tenant1.id).all()
        assert [r.source for r in records] == ['admin_edit']

    def test_approve_reports_roster_change(self, employee_client, admin_client):
        request_id = _submit_change(employee_client).get_json()['request']['id']

        data = _resolve(admin_client, request_id, 'approved').get_json()
        assert data['roster_changed'] is True
        assert 'message' not in data

    def test_approve_after_employee_id_renamed(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_change(employee_client).get_json()['request']['id']
        response = admin_client.put(f'{ACME}/api/admin/employees/E001', json={'new_id': 'E101'})
        assert response.status_code == 200

        response = _resolve(admin_client, request_id, 'approved')
        assert response.status_code == 200
        assert response.get_json()['request']['employee_id'] == 'E101'
        assert _shift(session, tenant1, 'E101', '2025-11-03') == 'D1'

        record = session.query(ShiftModification).filter_by(tenant_id=tenant1.id).one()
        assert record.employee_id == 'E101'


class TestSwap:
    """Submitting and resolving swap requests."""

    def test_submit_swap(self, employee_client):
        response = _submit_swap(employee_client)
        assert response.status_code == 201
        data = response.get_json()['request']
        assert data['requester_id'] == 'E001'
        assert data['target_employee_id'] == 'E002'
        assert (data['requester_shift'], data['target_shift']) == ('M2', 'D1')

    def test_cannot_swap_with_self(self, employee_client):
        assert _submit_swap(employee_client, target='E001').status_code == 400

    def test_target_must_be_on_roster(self, employee_client):
        assert _submit_swap(employee_client, target='E999').status_code == 400

    def test_approve_swap_exchanges_shifts(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_swap(employee_client).get_json()['request']['id']

        assert _resolve(admin_client, request_id, 'approved').status_code == 200

        assert _shift(session, tenant1, 'E001', '2025-11-03') == 'D1'
        assert _shift(session, tenant1, 'E002', '2025-11-03') == 'M2'
        records = session.query(ShiftModification).filter_by(tenant_id=tenant1.id, source='swap').all()
        assert {r.employee_id for r in records} == {'E001', 'E002'}

    def test_swap_uses_shifts_at_approval_time(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_swap(employee_client).get_json()['request']['id']
        admin_client.post(f'{ACME}/api/admin/shifts',
                          json={'employee_id': 'E002', 'date': '2025-11-03', 'shift_code': 'M4'})

        assert _resolve(admin_client, request_id, 'approved').status_code == 200

        assert _shift(session, tenant1, 'E001', '2025-11-03') == 'M4'
        assert _shift(session, tenant1, 'E002', '2025-11-03') == 'M2'

    def test_target_sees_swap(self, employee_client, e002_client):
        request_id = _submit_swap(employee_client).get_json()['request']['id']

        requests = e002_client.get(f'{ACME}/api/employee/requests').get_json()['requests']
        assert [r['id'] for r in requests] == [request_id]

        notifications = e002_client.get(f'{ACME}/api/employee/notifications').get_json()['notifications']
        assert notifications[0]['type'] == 'swap_requested'


    def test_rename_carries_over_to_swap_target(self, employee_client, admin_client, session, tenant1):
        request_id = _submit_swap(employee_client).get_json()['request']['id']
        admin_client.put(f'{ACME}/api/admin/employees/E002', json={'new_id': 'E202'})

        session.expire_all()
        request_obj = session.get(ScheduleRequest, request_id)
        assert request_obj.target_employee_id == 'E202'

        assert _resolve(admin_client, request_id, 'approved').status_code == 200
        assert _shift(session, tenant1, 'E202', '2025-11-03') == 'M2'


class TestAdminListing:

    def test_invalid_status(self, employee_client, admin_client):
        request_id = _submit_change(employee_client).get_json()['request']['id']
        assert _resolve(admin_client, request_id, 'maybe').status_code == 400

    def test_unknown_request(self, admin_client, roster1):
        assert _resolve(admin_client, 9999, 'approved').status_code == 404

    def test_pending_listed_first(self, employee_client, admin_client):
        first = _submit_change(employee_client).get_json()['request']['id']
        second = _submit_swap(employee_client).get_json()['request']['id']
        _resolve(admin_client, second, 'rejected')

        requests = admin_client.get(f'{ACME}/api/admin/requests').get_json()['requests']
        assert [r['id'] for r in requests] == [first, second]

        swaps = admin_client.get(f'{ACME}/api/admin/requests?type=swap').get_json()['requests']
        assert [r['id'] for r in swaps] == [second]

        me = admin_client.get(f'{ACME}/api/admin/me').get_json()
        assert me['pending_requests'] == 1
