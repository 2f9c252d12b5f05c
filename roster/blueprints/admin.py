"""
Admin Blueprint - tenant admin portal.

All routes run in the tenant resolved from the host or /tenant/<slug> path.

Routes:
- /api/admin/login, /logout, /me
- /api/admin/roster                       - roster display data
- /api/admin/roster/reset                 - working roster <- last import
- /api/admin/teams[/<name>]               - add / rename / delete
- /api/admin/employees[/<id>]             - add / edit
- /api/admin/employees/<id>/deactivate|reactivate|password-link
- /api/admin/employees/<id>/profile     - contact details (GET / PUT)
- /api/admin/shifts                       - set one roster cell
- /api/admin/csv/import, /csv/export
- /api/admin/modified-shifts              - monthly modification report
- /api/admin/shift-definitions[/<code>]
- /api/admin/settings                     - organization name
- /api/admin/requests, /requests/pending, /requests/<id>/status
"""
from typing import Tuple
from flask import Blueprint, request, session, jsonify, g, Response, current_app

from roster.blueprints.metrics import logins_total, csv_imports_total, requests_resolved_total
from roster.database import get_session
from roster.decorators.auth import admin_required
from roster.exceptions import UnauthorizedError, NotFoundError, ValidationError
from roster.services import (
    auth_service, roster_service, csv_service, request_service, tenant_service,
    modification_service, profile_service,
)
from roster.services.email_service import build_password_link, send_password_link_email
from roster.utils.dates import is_valid_month
from roster.utils.validation import get_payload

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _actor() -> str:
    return g.admin_user.username


# =====================================================
# AUTH
# =====================================================

@admin_bp.route('/login', methods=['POST'])
def login() -> Response:
    """Tenant admin login; the tenant comes from the host/path or a 'tenant' field."""
    session_db = get_session()
    payload = get_payload()

    tenant = g.get('tenant')
    if tenant is None and payload.get('tenant'):
        tenant = tenant_service.get_tenant_by_slug(session_db, payload.get('tenant'))
    if tenant is None:
        raise NotFoundError('Tenant not found')

    try:
        admin_user = auth_service.authenticate_admin(
            session_db, tenant, payload.get('username'), payload.get('password')
        )
    except UnauthorizedError:
        logins_total.labels(role='admin', result='failure').inc()
        raise

    session.clear()
    session['tenant_admin'] = {'tenant_id': tenant.id, 'username': admin_user.username}
    session.permanent = True
    logins_total.labels(role='admin', result='success').inc()

    return jsonify({'success': True, 'tenant': tenant.slug, 'user': admin_user.to_dict()})


@admin_bp.route('/logout', methods=['POST'])
def logout() -> Response:
    session.pop('tenant_admin', None)
    return jsonify({'success': True})


@admin_bp.route('/me')
@admin_required
def me() -> Response:
    return jsonify({
        'success': True,
        'user': g.admin_user.to_dict(),
        'tenant': {'slug': g.tenant.slug, 'name': g.tenant.name,
                   'organization_name': g.tenant.organization_name},
        'pending_requests': request_service.count_pending(get_session(), g.tenant.id),
    })


# =====================================================
# ROSTER
# =====================================================

@admin_bp.route('/roster', methods=['GET'])
@admin_required
def get_roster() -> Response:
    roster = roster_service.get_roster(get_session(), g.tenant)
    return jsonify({'success': True, **roster})


@admin_bp.route('/roster/reset', methods=['POST'])
@admin_required
def reset_roster() -> Response:
    session_db = get_session()
    roster_service.reset_to_baseline(session_db, g.tenant, _actor())
    return jsonify({'success': True, 'message': 'Roster reset to the last imported version'})


@admin_bp.route('/shifts', methods=['POST', 'PUT'])
@admin_required
def update_shift() -> Response:
    payload = get_payload()
    employee, old_shift, new_shift = roster_service.update_shift(
        get_session(), g.tenant,
        employee_id=payload.get('employee_id'),
        date_value=payload.get('date'),
        shift_code=payload.get('shift_code', payload.get('shift')),
        actor=_actor(),
    )
    return jsonify({
        'success': True,
        'employee_id': employee['id'],
        'old_shift': old_shift,
        'new_shift': new_shift,
        'changed': old_shift != new_shift,
    })


# =====================================================
# TEAMS
# =====================================================

@admin_bp.route('/teams', methods=['POST'])
@admin_required
def add_team() -> Tuple[Response, int]:
    team = roster_service.add_team(get_session(), g.tenant, get_payload().get('name'), _actor())
    return jsonify({'success': True, 'team': team}), 201


@admin_bp.route('/teams/<path:team_name>', methods=['PUT', 'PATCH'])
@admin_required
def rename_team(team_name: str) -> Response:
    team = roster_service.rename_team(
        get_session(), g.tenant, team_name, get_payload().get('name'), _actor()
    )
    return jsonify({'success': True, 'team': team})


@admin_bp.route('/teams/<path:team_name>', methods=['DELETE'])
@admin_required
def delete_team(team_name: str) -> Response:
    moved = roster_service.delete_team(get_session(), g.tenant, team_name, _actor())
    return jsonify({'success': True, 'moved_employees': moved})


# =====================================================
# EMPLOYEES
# =====================================================

@admin_bp.route('/employees', methods=['POST'])
@admin_required
def add_employee() -> Tuple[Response, int]:
    payload = get_payload()
    employee = roster_service.add_employee(
        get_session(), g.tenant,
        employee_id=payload.get('employee_id', payload.get('id')),
        name=payload.get('name'),
        team=payload.get('team'),
        actor=_actor(),
    )
    return jsonify({'success': True, 'employee': employee}), 201


@admin_bp.route('/employees/<employee_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_employee(employee_id: str) -> Response:
    payload = get_payload()
    employee = roster_service.update_employee(
        get_session(), g.tenant, employee_id, _actor(),
        name=payload.get('name'),
        new_id=payload.get('new_id'),
        team=payload.get('team'),
    )
    return jsonify({'success': True, 'employee': employee})


@admin_bp.route('/employees/<employee_id>/deactivate', methods=['POST'])
@admin_required
def deactivate_employee(employee_id: str) -> Response:
    employee = roster_service.deactivate_employee(get_session(), g.tenant, employee_id, _actor())
    return jsonify({'success': True, 'employee': employee})


@admin_bp.route('/employees/<employee_id>/reactivate', methods=['POST'])
@admin_required
def reactivate_employee(employee_id: str) -> Response:
    employee = roster_service.reactivate_employee(
        get_session(), g.tenant, employee_id, _actor(), team=get_payload().get('team')
    )
    return jsonify({'success': True, 'employee': employee})


@admin_bp.route('/employees/<employee_id>/password-link', methods=['POST'])
@admin_required
def send_password_link(employee_id: str) -> Response:
    """Issue a 24h set-password link and email it to the employee."""
    session_db = get_session()
    credential, token = auth_service.issue_password_link(
        session_db, g.tenant, employee_id, get_payload().get('email')
    )
    employee = roster_service.get_employee(session_db, g.tenant, credential.employee_id)
    link = build_password_link(g.tenant.slug, token)
    sent = send_password_link_email(
        credential.email, employee['name'], link, g.tenant.organization_name,
        ttl_hours=current_app.config.get('PASSWORD_RESET_TTL_HOURS', 24),
    )
    return jsonify({
        'success': True,
        'email_sent': sent,
        'link': link,
        'expires_at': credential.reset_token_expires_at.isoformat(),
    })


@admin_bp.route('/employees/<employee_id>/profile', methods=['GET'])
@admin_required
def employee_profile(employee_id: str) -> Response:
    profile = profile_service.get_profile(get_session(), g.tenant, employee_id)
    return jsonify({'success': True, 'profile': profile})


@admin_bp.route('/employees/<employee_id>/profile', methods=['PUT', 'PATCH'])
@admin_required
def update_employee_profile(employee_id: str) -> Response:
    profile = profile_service.update_profile(get_session(), g.tenant, employee_id, get_payload(), _actor())
    return jsonify({'success': True, 'profile': profile})


# =====================================================
# CSV
# =====================================================

@admin_bp.route('/csv/import', methods=['POST'])
@admin_required
def import_csv() -> Response:
    """Accepts a multipart 'file' upload or a raw text/csv body."""
    upload = request.files.get('file')
    max_size = current_app.config.get('MAX_CSV_UPLOAD_SIZE', 2 * 1024 * 1024)

    if upload is not None:
        raw = upload.read(max_size + 1)
    else:
        raw = request.get_data(cache=False)[:max_size + 1]
    if len(raw) > max_size:
        csv_imports_total.labels(result='rejected').inc()
        raise ValidationError(f'CSV file is too large (max {max_size // 1024} KB)')

    try:
        text = raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        csv_imports_total.labels(result='rejected').inc()
        raise ValidationError('CSV file must be UTF-8 encoded')

    try:
        stats = csv_service.import_roster_csv(get_session(), g.tenant, text, _actor())
    except ValidationError:
        csv_imports_total.labels(result='rejected').inc()
        raise

    csv_imports_total.labels(result='imported').inc()
    return jsonify({'success': True, 'stats': stats})


@admin_bp.route('/csv/export', methods=['GET'])
@admin_required
def export_csv() -> Response:
    month = request.args.get('month') or None
    content = csv_service.export_roster_csv(get_session(), g.tenant, month=month)
    filename = f"roster-{g.tenant.slug}{'-' + month if month else ''}.csv"
    return Response(
        content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


# =====================================================
# REPORTS & SETTINGS
# =====================================================

@admin_bp.route('/modified-shifts', methods=['GET'])
@admin_required
def modified_shifts() -> Response:
    month = request.args.get('month') or None
    if month and not is_valid_month(month):
        raise ValidationError(f'Invalid month: {month} (expected YYYY-MM)')
    report = modification_service.get_monthly_report(get_session(), g.tenant.id, month)
    return jsonify({'success': True, **report})


@admin_bp.route('/shift-definitions', methods=['GET'])
@admin_required
def get_shift_definitions() -> Response:
    return jsonify({'success': True, 'shiftDefinitions': roster_service.get_shift_definitions(g.tenant)})


@admin_bp.route('/shift-definitions', methods=['POST', 'PUT'])
@admin_required
def save_shift_definition() -> Response:
    payload = get_payload()
    definitions = roster_service.save_shift_definition(
        get_session(), g.tenant, payload.get('code'), payload.get('label')
    )
    return jsonify({'success': True, 'shiftDefinitions': definitions})


@admin_bp.route('/shift-definitions/<code>', methods=['DELETE'])
@admin_required
def delete_shift_definition(code: str) -> Response:
    definitions = roster_service.delete_shift_definition(get_session(), g.tenant, code)
    return jsonify({'success': True, 'shiftDefinitions': definitions})


@admin_bp.route('/settings', methods=['GET'])
@admin_required
def get_settings() -> Response:
    return jsonify({'success': True, **roster_service.get_organization_settings(g.tenant)})


@admin_bp.route('/settings', methods=['PUT', 'POST'])
@admin_required
def update_settings() -> Response:
    settings = roster_service.update_organization_name(
        get_session(), g.tenant, get_payload().get('organization_name')
    )
    return jsonify({'success': True, **settings})


# =====================================================
# SCHEDULE REQUESTS
# =====================================================

@admin_bp.route('/requests', methods=['GET'])
@admin_required
def list_requests() -> Response:
    requests = request_service.list_requests(
        get_session(), g.tenant.id,
        status=request.args.get('status') or None,
        request_type=request.args.get('type') or None,
    )
    return jsonify({'success': True, 'requests': [r.to_dict() for r in requests]})


@admin_bp.route('/requests/pending', methods=['GET'])
@admin_required
def list_pending_requests() -> Response:
    requests = request_service.list_pending(get_session(), g.tenant.id)
    return jsonify({'success': True, 'requests': [r.to_dict() for r in requests]})


@admin_bp.route('/requests/<int:request_id>/status', methods=['POST', 'PUT'])
@admin_required
def update_request_status(request_id: int) -> Response:
    payload = get_payload()
    request_obj, roster_changed = request_service.resolve_request(
        get_session(), g.tenant, request_id,
        status=payload.get('status'),
        actor=_actor(),
        admin_message=payload.get('admin_message'),
    )
    requests_resolved_total.labels(type=request_obj.type, status=request_obj.status).inc()

    response = {'success': True, 'request': request_obj.to_dict(), 'roster_changed': roster_changed}
    if request_obj.status == 'approved' and not roster_changed:
        response['message'] = 'Approved. The roster already had this shift, nothing was changed.'
    return jsonify(response)
