"""
Roster Store - tenant-scoped access to the roster JSON document.

The document is read and rewritten wholesale. Every mutation runs as:

    document = load_document(session, tenant_id, for_update=True)   # row lock
    data = working_copy(document)                                    # deep copy
    ... mutate data ...
    save_document(session, document, data, actor)                    # version bump
    session.commit()

The row lock serializes writers on PostgreSQL; the version column turns any
write that still raced past it into a ConflictError instead of a lost update.
"""
import copy
import logging
from bisect import bisect_left
from sqlalchemy.orm.exc import StaleDataError

from roster.exceptions import ConflictError
from roster.models import RosterDocument, empty_roster
from roster.utils.shift_codes import EMPTY_SHIFT

logger = logging.getLogger(__name__)

INACTIVE_TEAM = 'Inactive Employees'
UNASSIGNED_TEAM = 'Unassigned'


# ===== DOCUMENT HELPERS (pure, operate on plain dicts) =====

def iter_employees(data):
    """Yield (team_name, employee) for every employee in the document."""
    for team_name, employees in data.get('teams', {}).items():
        for employee in employees:
            yield team_name, employee


def all_employees(data):
    return [employee for _, employee in iter_employees(data)]


def find_employee(data, employee_id, case_insensitive=False):
    """
    Locate an employee by id.

    Returns (team_name, index, employee) or None.
    """
    if not employee_id:
        return None
    wanted = employee_id.lower() if case_insensitive else employee_id
    for team_name, employees in data.get('teams', {}).items():
        for index, employee in enumerate(employees):
            current = employee.get('id', '')
            if (current.lower() if case_insensitive else current) == wanted:
                return team_name, index, employee
    return None


def date_index(data, iso_date):
    """Column index of a date, or None if the roster has no such column."""
    dates = data.get('dates', [])
    index = bisect_left(dates, iso_date)
    if index < len(dates) and dates[index] == iso_date:
        return index
    return None


def ensure_date(data, iso_date):
    """
    Make sure the document has a column for `iso_date`.

    Dates stay sorted; a new column gets an empty cell in every schedule.
    Returns (index, created).
    """
    dates = data.setdefault('dates', [])
    index = bisect_left(dates, iso_date)
    if index < len(dates) and dates[index] == iso_date:
        return index, False
    dates.insert(index, iso_date)
    for _, employee in iter_employees(data):
        employee.setdefault('schedule', []).insert(index, EMPTY_SHIFT)
    return index, True


def get_shift(data, employee_id, iso_date):
    """Shift code of one cell, or None if employee or date is missing."""
    found = find_employee(data, employee_id)
    index = date_index(data, iso_date)
    if not found or index is None:
        return None
    return found[2]['schedule'][index]


def new_employee(employee_id, name, team, date_count):
    return {
        'id': employee_id,
        'name': name,
        'team': team,
        'schedule': [EMPTY_SHIFT] * date_count,
        'status': 'active',
        'deleted_at': None,
    }


def move_employee(data, employee_id, target_team):
    """Move an employee to another team (created if missing). Returns the employee or None."""
    found = find_employee(data, employee_id)
    if not found:
        return None
    team_name, index, employee = found
    teams = data['teams']
    teams.setdefault(target_team, [])
    if team_name != target_team:
        teams[team_name].pop(index)
        teams[target_team].append(employee)
    employee['team'] = target_team
    return employee


def normalize_document(data):
    """
    Repair a document in place and return it.

    - an employee listed in several teams is kept only in its current team
    - every schedule has exactly one cell per date
    - every employee carries its team name
    """
    data.setdefault('dates', [])
    teams = data.setdefault('teams', {})
    width = len(data['dates'])

    current_team = {}
    for team_name, employees in teams.items():
        for employee in employees:
            recorded = employee.get('team')
            current_team[employee.get('id')] = recorded if recorded in teams else team_name

    seen = set()
    for team_name in list(teams):
        kept = []
        for employee in teams[team_name]:
            emp_id = employee.get('id')
            if current_team.get(emp_id) != team_name or emp_id in seen:
                continue
            seen.add(emp_id)
            employee['team'] = team_name
            employee.setdefault('status', 'active')
            employee.setdefault('deleted_at', None)
            schedule = list(employee.get('schedule') or [])
            if len(schedule) < width:
                schedule.extend([EMPTY_SHIFT] * (width - len(schedule)))
            employee['schedule'] = schedule[:width]
            kept.append(employee)
        teams[team_name] = kept
    return data


def restore_baseline(data, baseline):
    """
    Working document rebuilt from the baseline (last import).

    Shift cells, names and teams come from the baseline. Employees who are
    inactive in `data` stay inactive, and employees added after the last
    import are kept with empty schedules, so credentials stay in step.
    """
    restored = normalize_document(copy.deepcopy(baseline))
    width = len(restored['dates'])

    for team_name, employee in list(iter_employees(data)):
        found = find_employee(restored, employee['id'])
        if found is None:
            restored['teams'].setdefault(team_name, []).append(
                new_employee(employee['id'], employee['name'], team_name, width)
            )
        elif found[0] == INACTIVE_TEAM and team_name != INACTIVE_TEAM:
            restored_employee = move_employee(restored, employee['id'], team_name)
            restored_employee['status'] = 'active'
            restored_employee['deleted_at'] = None
            restored_employee.pop('previous_team', None)
        if team_name == INACTIVE_TEAM:
            restored_employee = move_employee(restored, employee['id'], INACTIVE_TEAM)
            restored_employee['status'] = employee.get('status', 'inactive')
            restored_employee['deleted_at'] = employee.get('deleted_at')
            if employee.get('previous_team'):
                restored_employee['previous_team'] = employee['previous_team']
    return restored


def to_display(data, shift_definitions=None):
    """
    Shape the document for API responses.

    JSON objects do not keep key order once serialized, so team order is
    returned separately in teamOrder.
    """
    teams = data.get('teams', {})
    return {
        'dates': list(data.get('dates', [])),
        'teams': teams,
        'teamOrder': list(teams),
        'allEmployees': all_employees(data),
        'shiftDefinitions': shift_definitions or {},
    }


# ===== PERSISTENCE =====

def load_document(session, tenant_id, for_update=False):
    """
    Fetch the tenant's roster document, creating an empty one on first use.

    for_update=True takes a row lock (SELECT ... FOR UPDATE) for the rest of
    the transaction.
    """
    query = session.query(RosterDocument).filter(RosterDocument.tenant_id == tenant_id)
    if for_update:
        query = query.with_for_update()
    document = query.first()

    if document is None:
        document = RosterDocument(tenant_id=tenant_id, data=empty_roster(), baseline=empty_roster())
        session.add(document)
        session.flush()
        logger.info(f"[ROSTER] Created empty roster document for tenant {tenant_id}")
    return document


def working_copy(document):
    return normalize_document(copy.deepcopy(document.data or empty_roster()))


def baseline_copy(document):
    return normalize_document(copy.deepcopy(document.baseline or empty_roster()))


def save_document(session, document, data, actor, baseline=None):
    """
    Write the whole document back and flush.

    Raises ConflictError if another transaction committed a newer version.
    """
    document.data = normalize_document(copy.deepcopy(data))
    if baseline is not None:
        document.baseline = normalize_document(copy.deepcopy(baseline))
    document.updated_by = actor

    try:
        session.flush()
    except StaleDataError:
        session.rollback()
        logger.warning(f"[ROSTER] Concurrent write detected for tenant {document.tenant_id}")
        raise ConflictError('The roster was modified by someone else. Reload and try again.')

    logger.info(f"[ROSTER] Saved roster for tenant {document.tenant_id} (version {document.version}) by {actor}")
    return document
