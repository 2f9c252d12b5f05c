"""
Roster service - admin operations on a tenant's roster document.

Every mutation locks the document row, edits a working copy and writes it
back in one transaction (see roster_store). Callers pass the resolved
Tenant; nothing here reads request context.
"""
from datetime import datetime
import logging

from roster.exceptions import ValidationError, NotFoundError, ConflictError, ForbiddenError
from roster.models import EmployeeCredential, ScheduleRequest, ShiftModification, ModificationSource
from roster.services import roster_store
from roster.services.roster_store import INACTIVE_TEAM, UNASSIGNED_TEAM
from roster.services.modification_service import log_modification
from roster.utils.dates import parse_roster_date
from roster.utils.validation import text_value
from roster.utils.shift_codes import (
    EMPTY_SHIFT, normalize_code, shift_definitions_for, is_valid_shift_code
)

logger = logging.getLogger(__name__)

RESERVED_TEAMS = (INACTIVE_TEAM, UNASSIGNED_TEAM)


def _commit(session, document, data, actor, baseline=None):
    roster_store.save_document(session, document, data, actor, baseline=baseline)
    session.commit()
    return data


# ===== READ =====

def get_roster(session, tenant):
    """Roster shaped for display (teams, dates, all employees, shift definitions)."""
    document = roster_store.load_document(session, tenant.id)
    data = roster_store.working_copy(document)
    session.commit()  # persists the empty document on first access
    return roster_store.to_display(data, shift_definitions_for(tenant.settings))


def get_employee(session, tenant, employee_id):
    document = roster_store.load_document(session, tenant.id)
    found = roster_store.find_employee(roster_store.working_copy(document), employee_id)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    return found[2]


# ===== TEAMS =====

def add_team(session, tenant, team_name, actor):
    team_name = text_value(team_name, 'Team name')
    if not team_name:
        raise ValidationError('Team name is required')

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    if team_name in data['teams']:
        raise ConflictError(f'Team "{team_name}" already exists')

    data['teams'][team_name] = []
    _commit(session, document, data, actor)
    logger.info(f"[ROSTER] Team added: tenant {tenant.id} '{team_name}' by {actor}")
    return team_name


def rename_team(session, tenant, old_name, new_name, actor):
    old_name = text_value(old_name, 'Team name')
    new_name = text_value(new_name, 'New team name')
    if not old_name or not new_name:
        raise ValidationError('Both the current and the new team name are required')
    if old_name in RESERVED_TEAMS:
        raise ValidationError(f'Team "{old_name}" cannot be renamed')

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    if old_name not in data['teams']:
        raise NotFoundError(f'Team "{old_name}" not found')
    if old_name == new_name:
        return new_name
    if new_name in data['teams']:
        raise ConflictError(f'Team "{new_name}" already exists')

    # Rebuild the mapping so the renamed team keeps its position
    data['teams'] = {
        (new_name if name == old_name else name): members
        for name, members in data['teams'].items()
    }
    for employee in data['teams'][new_name]:
        employee['team'] = new_name

    baseline = roster_store.baseline_copy(document)
    if old_name in baseline['teams']:
        baseline['teams'] = {
            (new_name if name == old_name else name): members
            for name, members in baseline['teams'].items()
        }

    _commit(session, document, data, actor, baseline=baseline)
    logger.info(f"[ROSTER] Team renamed: tenant {tenant.id} '{old_name}' -> '{new_name}' by {actor}")
    return new_name


def delete_team(session, tenant, team_name, actor):
    """Delete a team; its members move to the Unassigned team."""
    team_name = text_value(team_name, 'Team name')
    if team_name in RESERVED_TEAMS:
        raise ValidationError(f'Team "{team_name}" cannot be deleted')

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    if team_name not in data['teams']:
        raise NotFoundError(f'Team "{team_name}" not found')

    members = data['teams'].pop(team_name)
    if members:
        unassigned = data['teams'].setdefault(UNASSIGNED_TEAM, [])
        for employee in members:
            employee['team'] = UNASSIGNED_TEAM
            unassigned.append(employee)

    _commit(session, document, data, actor)
    logger.info(f"[ROSTER] Team deleted: tenant {tenant.id} '{team_name}' ({len(members)} moved) by {actor}")
    return len(members)


# ===== EMPLOYEES =====

def _employee_id_taken(session, tenant_id, data, baseline, employee_id):
    if roster_store.find_employee(data, employee_id, case_insensitive=True):
        return True
    if roster_store.find_employee(baseline, employee_id, case_insensitive=True):
        return True
    credential = session.query(EmployeeCredential).filter(
        EmployeeCredential.tenant_id == tenant_id,
        EmployeeCredential.employee_id == employee_id,
    ).first()
    return credential is not None


def _active_employee_count(data):
    return sum(
        1 for team_name, employee in roster_store.iter_employees(data)
        if team_name != INACTIVE_TEAM
    )


def add_employee(session, tenant, employee_id, name, team, actor):
    employee_id = text_value(employee_id, 'Employee ID')
    name = text_value(name, 'Name')
    team = text_value(team, 'Team') or UNASSIGNED_TEAM
    if not employee_id or not name:
        raise ValidationError('Employee ID and name are required')
    if team == INACTIVE_TEAM:
        raise ValidationError(f'Employees cannot be added to "{INACTIVE_TEAM}"')

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    baseline = roster_store.baseline_copy(document)

    if _employee_id_taken(session, tenant.id, data, baseline, employee_id):
        raise ConflictError(f'Employee ID {employee_id} already exists')

    if tenant.max_employees is not None and _active_employee_count(data) >= tenant.max_employees:
        raise ForbiddenError(f'Employee limit reached ({tenant.max_employees})')

    employee = roster_store.new_employee(employee_id, name, team, len(data['dates']))
    data['teams'].setdefault(team, []).append(employee)

    _commit(session, document, data, actor)
    logger.info(f"[ROSTER] Employee added: tenant {tenant.id} {employee_id} -> '{team}' by {actor}")
    return employee


def _rename_employee_references(session, tenant_id, old_id, new_id):
    """Point the credential, requests and modification log of `old_id` at `new_id`."""
    session.query(EmployeeCredential).filter(
        EmployeeCredential.tenant_id == tenant_id,
        EmployeeCredential.employee_id == old_id,
    ).update({EmployeeCredential.employee_id: new_id}, synchronize_session='fetch')
    session.query(ScheduleRequest).filter(
        ScheduleRequest.tenant_id == tenant_id,
        ScheduleRequest.requester_id == old_id,
    ).update({ScheduleRequest.requester_id: new_id}, synchronize_session='fetch')
    session.query(ScheduleRequest).filter(
        ScheduleRequest.tenant_id == tenant_id,
        ScheduleRequest.target_employee_id == old_id,
    ).update({ScheduleRequest.target_employee_id: new_id}, synchronize_session='fetch')
    session.query(ShiftModification).filter(
        ShiftModification.tenant_id == tenant_id,
        ShiftModification.employee_id == old_id,
    ).update({ShiftModification.employee_id: new_id}, synchronize_session='fetch')


def update_employee(session, tenant, employee_id, actor, name=None, new_id=None, team=None):
    """
    Edit name, id and/or team of an employee.

    An id change is carried over to the baseline, the credential, schedule
    requests and the modification log in the same transaction. Inactive
    employees keep their team until reactivated.
    """
    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    baseline = roster_store.baseline_copy(document)

    found = roster_store.find_employee(data, employee_id)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    current_team, _, employee = found

    if name is not None:
        name = text_value(name, 'Name')
        if not name:
            raise ValidationError('Employee name cannot be empty')
        employee['name'] = name

    team = text_value(team, 'Team')
    if team == INACTIVE_TEAM:
        raise ValidationError('Use deactivate to move an employee to inactive')
    if team and current_team == INACTIVE_TEAM:
        raise ValidationError(f'Employee {employee_id} is inactive. Use reactivate to assign a team')

    new_id = text_value(new_id, 'Employee ID')
    if new_id and new_id != employee_id:
        # A change of case only is not a clash with itself
        if new_id.lower() != employee_id.lower() and _employee_id_taken(
            session, tenant.id, data, baseline, new_id
        ):
            raise ConflictError(f'Employee ID {new_id} already exists')
        employee['id'] = new_id
        base_found = roster_store.find_employee(baseline, employee_id)
        if base_found:
            base_found[2]['id'] = new_id
        _rename_employee_references(session, tenant.id, employee_id, new_id)

    if team and team != current_team:
        roster_store.move_employee(data, employee['id'], team)

    _commit(session, document, data, actor, baseline=baseline)
    logger.info(f"[ROSTER] Employee updated: tenant {tenant.id} {employee_id} by {actor}")
    return employee


def deactivate_employee(session, tenant, employee_id, actor):
    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)

    found = roster_store.find_employee(data, employee_id)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    team_name, _, employee = found
    if team_name == INACTIVE_TEAM:
        raise ConflictError(f'Employee {employee_id} is already inactive')

    employee['previous_team'] = team_name
    roster_store.move_employee(data, employee_id, INACTIVE_TEAM)
    employee['status'] = 'inactive'
    employee['deleted_at'] = datetime.utcnow().isoformat()

    credential = session.query(EmployeeCredential).filter(
        EmployeeCredential.tenant_id == tenant.id,
        EmployeeCredential.employee_id == employee_id,
    ).first()
    if credential:
        credential.deactivate()

    _commit(session, document, data, actor)
    logger.info(f"[ROSTER] Employee deactivated: tenant {tenant.id} {employee_id} by {actor}")
    return employee


def reactivate_employee(session, tenant, employee_id, actor, team=None):
    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)

    found = roster_store.find_employee(data, employee_id)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    team_name, _, employee = found
    if team_name != INACTIVE_TEAM:
        raise ConflictError(f'Employee {employee_id} is already active')

    if tenant.max_employees is not None and _active_employee_count(data) >= tenant.max_employees:
        raise ForbiddenError(f'Employee limit reached ({tenant.max_employees})')

    target = text_value(team, 'Team') or employee.pop('previous_team', None) or UNASSIGNED_TEAM
    if target == INACTIVE_TEAM:
        raise ValidationError(f'Cannot reactivate into "{INACTIVE_TEAM}"')
    employee.pop('previous_team', None)
    roster_store.move_employee(data, employee_id, target)
    employee['status'] = 'active'
    employee['deleted_at'] = None

    credential = session.query(EmployeeCredential).filter(
        EmployeeCredential.tenant_id == tenant.id,
        EmployeeCredential.employee_id == employee_id,
    ).first()
    if credential:
        credential.reactivate()

    _commit(session, document, data, actor)
    logger.info(f"[ROSTER] Employee reactivated: tenant {tenant.id} {employee_id} -> '{target}' by {actor}")
    return employee


# ===== SHIFTS =====

def update_shift(session, tenant, employee_id, date_value, shift_code, actor):
    """
    Set one roster cell and log the change.

    Returns (employee, old_shift, new_shift).
    """
    employee_id = text_value(employee_id, 'Employee ID')
    iso_date = parse_roster_date(date_value)
    if not iso_date:
        raise ValidationError(f'Invalid date: {date_value}')
    new_shift = normalize_code(shift_code)
    definitions = shift_definitions_for(tenant.settings)
    if not is_valid_shift_code(new_shift, definitions):
        raise ValidationError(f'Unknown shift code: {new_shift}')

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)

    found = roster_store.find_employee(data, employee_id)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    index = roster_store.date_index(data, iso_date)
    if index is None:
        raise ValidationError(f'Date {iso_date} is not part of the roster')

    employee = found[2]
    old_shift = employee['schedule'][index]
    if old_shift == new_shift:
        session.commit()  # release the row lock
        return employee, old_shift, new_shift

    employee['schedule'][index] = new_shift
    log_modification(
        session, tenant.id, employee, iso_date, old_shift, new_shift,
        modified_by=actor, source=ModificationSource.ADMIN_EDIT,
    )
    _commit(session, document, data, actor)
    return employee, old_shift, new_shift


def reset_to_baseline(session, tenant, actor):
    """
    Discard admin shift edits: cells, names and teams go back to the last import.

    Deactivated employees stay inactive and employees added since the import
    are kept (see roster_store.restore_baseline).
    """
    document = roster_store.load_document(session, tenant.id, for_update=True)
    restored = roster_store.restore_baseline(
        roster_store.working_copy(document), roster_store.baseline_copy(document)
    )
    _commit(session, document, restored, actor)
    logger.warning(f"[ROSTER] Roster reset to baseline: tenant {tenant.id} by {actor}")
    return restored


# ===== SHIFT DEFINITIONS & SETTINGS =====

def _update_settings(tenant, **changes):
    # Assign a new dict so the JSON column is flagged dirty
    settings = dict(tenant.settings or {})
    settings.update(changes)
    tenant.settings = settings


def get_shift_definitions(tenant):
    return shift_definitions_for(tenant.settings)


def save_shift_definition(session, tenant, code, label):
    code = normalize_code(code)
    label = text_value(label, 'Shift label')
    if not code:
        raise ValidationError('Shift code is required')
    if len(code) > 20:
        raise ValidationError('Shift code is too long (max 20 characters)')
    if not label:
        raise ValidationError('Shift label is required')

    definitions = shift_definitions_for(tenant.settings)
    definitions[code] = label
    _update_settings(tenant, shift_definitions=definitions)
    session.commit()
    logger.info(f"[ROSTER] Shift definition saved: tenant {tenant.id} {code}={label!r}")
    return definitions


def delete_shift_definition(session, tenant, code):
    code = normalize_code(code)
    definitions = shift_definitions_for(tenant.settings)
    if code == EMPTY_SHIFT or code not in definitions:
        raise NotFoundError(f'Shift code {code or "(empty)"} not found')

    del definitions[code]
    _update_settings(tenant, shift_definitions=definitions)
    session.commit()
    logger.info(f"[ROSTER] Shift definition deleted: tenant {tenant.id} {code}")
    return definitions


def get_organization_settings(tenant):
    return {
        'organization_name': tenant.organization_name,
        'tenant_name': tenant.name,
        'slug': tenant.slug,
    }


def update_organization_name(session, tenant, organization_name):
    organization_name = text_value(organization_name, 'Organization name')
    if not organization_name:
        raise ValidationError('Organization name is required')
    _update_settings(tenant, organization_name=organization_name)
    session.commit()
    return get_organization_settings(tenant)
