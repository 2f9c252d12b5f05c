"""
Employee Blueprint - employee schedule portal.

Routes:
- /api/employee/login, /logout, /me
- /api/employee/roster                    - roster display data
- /api/employee/change-password
- /api/employee/set-password              - check (GET) / consume (POST) an emailed password link
- /api/employee/profile                   - own contact details
- /api/employee/requests                  - own requests (as requester or swap target)
- /api/employee/requests/shift-change
- /api/employee/requests/swap
- /api/employee/notifications, /notifications/read
"""
from typing import Tuple
from flask import Blueprint, request, session, jsonify, g, Response

from roster.blueprints.metrics import logins_total, requests_submitted_total
from roster.database import get_session
from roster.decorators.auth import employee_required
from roster.exceptions import UnauthorizedError
from roster.services import (
    auth_service, roster_service, request_service, notification_service,
    profile_service, tenant_service,
)
from roster.utils.validation import get_payload

employee_bp = Blueprint('employee', __name__, url_prefix='/api/employee')


@employee_bp.route('/login', methods=['POST'])
def login() -> Response:
    """
    Employee login.

    The tenant comes from the host/path, or from a login of the form
    `slug@employee_id` / `slug/employee_id`.
    """
    session_db = get_session()
    payload = get_payload()
    login_name = payload.get('employee_id') or payload.get('login')

    try:
        tenant, employee_id = auth_service.resolve_employee_tenant(session_db, g.get('tenant'), login_name)
        employee, credential = auth_service.authenticate_employee(
            session_db, tenant, employee_id, payload.get('password')
        )
    except UnauthorizedError:
        logins_total.labels(role='employee', result='failure').inc()
        raise

    session.clear()
    session['employee'] = {'tenant_id': tenant.id, 'employee_id': credential.employee_id}
    session.permanent = True
    logins_total.labels(role='employee', result='success').inc()

    return jsonify({
        'success': True,
        'tenant': tenant.slug,
        'employee': {'id': employee['id'], 'name': employee['name'], 'team': employee['team']},
        'must_change_password': credential.is_default_password,
    })


@employee_bp.route('/logout', methods=['POST'])
def logout() -> Response:
    session.pop('employee', None)
    return jsonify({'success': True})


@employee_bp.route('/me')
@employee_required
def me() -> Response:
    employee = roster_service.get_employee(get_session(), g.tenant, g.employee_id)
    return jsonify({
        'success': True,
        'employee': employee,
        'email': g.employee_credential.email,
        'must_change_password': g.employee_credential.is_default_password,
        'organization_name': g.tenant.organization_name,
    })


@employee_bp.route('/roster')
@employee_required
def roster() -> Response:
    data = roster_service.get_roster(get_session(), g.tenant)
    return jsonify({'success': True, 'employee_id': g.employee_id, **data})


@employee_bp.route('/change-password', methods=['POST'])
@employee_required
def change_password() -> Response:
    payload = get_payload()
    auth_service.change_employee_password(
        get_session(), g.tenant, g.employee_id,
        payload.get('current_password'), payload.get('new_password'),
    )
    return jsonify({'success': True, 'message': 'Password updated'})


@employee_bp.route('/set-password', methods=['GET'])
def check_password_link() -> Response:
    """Target of the emailed link: confirms the token and says whose account it is."""
    session_db = get_session()
    credential = auth_service.get_credential_for_token(session_db, request.args.get('token'), g.get('tenant'))
    tenant = g.get('tenant') or tenant_service.get_tenant(session_db, credential.tenant_id)
    return jsonify({
        'success': True,
        'employee_id': credential.employee_id,
        'tenant': tenant.slug,
        'organization_name': tenant.organization_name,
        'expires_at': credential.reset_token_expires_at.isoformat(),
        'message': 'POST the token and a new password to this URL',
    })


@employee_bp.route('/set-password', methods=['POST'])
def set_password() -> Response:
    """Set a password from an emailed link; the token identifies the employee."""
    payload = get_payload()
    auth_service.set_password_with_token(
        get_session(), payload.get('token') or request.args.get('token'), payload.get('password'),
        tenant=g.get('tenant'),
    )
    return jsonify({'success': True, 'message': 'Password set. You can now log in.'})


@employee_bp.route('/profile', methods=['GET'])
@employee_required
def my_profile() -> Response:
    profile = profile_service.get_profile(get_session(), g.tenant, g.employee_id)
    return jsonify({'success': True, 'profile': profile})


@employee_bp.route('/profile', methods=['PUT', 'PATCH'])
@employee_required
def update_my_profile() -> Response:
    profile = profile_service.update_profile(
        get_session(), g.tenant, g.employee_id, get_payload(), f'employee {g.employee_id}'
    )
    return jsonify({'success': True, 'profile': profile})


@employee_bp.route('/requests', methods=['GET'])
@employee_required
def my_requests() -> Response:
    requests = request_service.list_employee_requests(get_session(), g.tenant.id, g.employee_id)
    return jsonify({'success': True, 'requests': [r.to_dict() for r in requests]})


@employee_bp.route('/requests/shift-change', methods=['POST'])
@employee_required
def submit_shift_change() -> Tuple[Response, int]:
    payload = get_payload()
    request_obj = request_service.submit_shift_change(
        get_session(), g.tenant, g.employee_id,
        date_value=payload.get('date'),
        requested_shift=payload.get('requested_shift'),
        reason=payload.get('reason'),
    )
    requests_submitted_total.labels(type=request_obj.type).inc()
    return jsonify({'success': True, 'request': request_obj.to_dict()}), 201


@employee_bp.route('/requests/swap', methods=['POST'])
@employee_required
def submit_swap() -> Tuple[Response, int]:
    payload = get_payload()
    request_obj = request_service.submit_swap(
        get_session(), g.tenant, g.employee_id,
        target_employee_id=payload.get('target_employee_id'),
        date_value=payload.get('date'),
        reason=payload.get('reason'),
    )
    requests_submitted_total.labels(type=request_obj.type).inc()
    return jsonify({'success': True, 'request': request_obj.to_dict()}), 201


@employee_bp.route('/notifications', methods=['GET'])
@employee_required
def notifications() -> Response:
    items = notification_service.get_notifications(
        get_session(), g.tenant.id, g.employee_id,
        shift_definitions=roster_service.get_shift_definitions(g.tenant),
    )
    return jsonify({'success': True, 'notifications': items, 'unread': len(items)})


@employee_bp.route('/notifications/read', methods=['POST'])
@employee_required
def mark_notifications_read() -> Response:
    read_at = notification_service.mark_notifications_read(get_session(), g.tenant.id, g.employee_id)
    return jsonify({'success': True, 'read_at': read_at.isoformat() if read_at else None})
