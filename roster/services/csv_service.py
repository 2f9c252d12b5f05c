"""
CSV roster import/export.

Long format, one row per roster cell:

    date,employee_id,name,team,shift_code
    2025-11-03,E001,Ana Ruiz,Front Desk,M2
    03/11/2025,E002,Luis Paz,Front Desk,DO

The header row is optional. Dates may be ISO or DD/MM/YYYY. The whole file
is validated before anything is written.

Merge rules (re-import of an updated file):
- the baseline (last import) takes every imported value
- a working cell takes the imported value only while it still equals the
  old baseline value, so cells edited by an admin are kept
- new dates and employees are added to both documents
Importing the same file twice leaves both documents unchanged.
"""
import csv
import io
import logging

from roster.exceptions import ValidationError
from roster.services import roster_store
from roster.services.roster_store import INACTIVE_TEAM, UNASSIGNED_TEAM
from roster.utils.dates import parse_roster_date, is_valid_month, month_of
from roster.utils.shift_codes import normalize_code, shift_definitions_for, is_valid_shift_code

logger = logging.getLogger(__name__)

CSV_COLUMNS = ['date', 'employee_id', 'name', 'team', 'shift_code']
MAX_REPORTED_ERRORS = 50


def _is_header(row):
    first = (row[0] if row else '').strip().lower()
    return first in ('date', 'fecha') or (len(row) > 1 and row[1].strip().lower() in ('employee_id', 'employee id', 'id'))


def parse_roster_csv(text, shift_definitions=None):
    """
    Parse and validate CSV text.

    Returns a list of row dicts (date, employee_id, name, team, shift_code).
    Raises ValidationError listing every bad row (1-based line numbers).
    Duplicate (employee, date) rows: the last one wins.
    """
    if text is None or not text.strip():
        raise ValidationError('CSV file is empty')

    reader = csv.reader(io.StringIO(text.lstrip('\ufeff')))
    rows = []
    errors = []

    for line_no, raw in enumerate(reader, start=1):
        if not raw or all(not cell.strip() for cell in raw):
            continue
        if line_no == 1 and _is_header(raw):
            continue
        if len(raw) < 5:
            errors.append(f'Row {line_no}: expected 5 columns ({", ".join(CSV_COLUMNS)}), got {len(raw)}')
            continue

        date_raw, employee_id, name, team, code = (cell.strip() for cell in raw[:5])
        iso_date = parse_roster_date(date_raw)
        code = normalize_code(code)

        if not iso_date:
            errors.append(f'Row {line_no}: invalid date "{date_raw}"')
        if not employee_id:
            errors.append(f'Row {line_no}: employee id is required')
        if not name:
            errors.append(f'Row {line_no}: employee name is required')
        if team == INACTIVE_TEAM:
            errors.append(f'Row {line_no}: team "{INACTIVE_TEAM}" cannot be imported')
        if not is_valid_shift_code(code, shift_definitions):
            errors.append(f'Row {line_no}: unknown shift code "{code}"')

        if iso_date and employee_id and name:
            rows.append({
                'date': iso_date,
                'employee_id': employee_id,
                'name': name,
                'team': team or UNASSIGNED_TEAM,
                'shift_code': code,
            })

    if errors:
        raise ValidationError(
            f'CSV import rejected: {len(errors)} invalid row(s)',
            payload={'errors': errors[:MAX_REPORTED_ERRORS]},
        )
    if not rows:
        raise ValidationError('CSV file contains no roster rows')

    return rows


def _canonical_ids(data, baseline, rows):
    """
    Map each row's employee id to the id already stored, ignoring case.

    Ids new to the roster keep the spelling of their first row.
    """
    canonical = {}
    for document in (data, baseline):
        for _, employee in roster_store.iter_employees(document):
            canonical.setdefault(employee['id'].lower(), employee['id'])
    return [
        dict(row, employee_id=canonical.setdefault(row['employee_id'].lower(), row['employee_id']))
        for row in rows
    ]


def merge_import(data, baseline, rows):
    """
    Apply parsed rows to the working document and the baseline in place.

    Employee ids match case-insensitively. Returns a stats dict.
    """
    stats = {'rows': len(rows), 'dates_added': 0, 'employees_added': 0,
             'cells_updated': 0, 'cells_kept': 0}
    rows = _canonical_ids(data, baseline, rows)

    # Register every date and employee first so column indexes are stable
    for row in rows:
        for document in (baseline, data):
            _, created = roster_store.ensure_date(document, row['date'])
            if created and document is data:
                stats['dates_added'] += 1

    for row in rows:
        for document in (baseline, data):
            if roster_store.find_employee(document, row['employee_id'], case_insensitive=True) is None:
                employee = roster_store.new_employee(
                    row['employee_id'], row['name'], row['team'], len(document['dates'])
                )
                document['teams'].setdefault(row['team'], []).append(employee)
                if document is data:
                    stats['employees_added'] += 1

    for row in rows:
        base_employee = roster_store.find_employee(baseline, row['employee_id'], case_insensitive=True)[2]
        work_employee = roster_store.find_employee(data, row['employee_id'], case_insensitive=True)[2]
        base_index = roster_store.date_index(baseline, row['date'])
        work_index = roster_store.date_index(data, row['date'])

        previous_baseline = base_employee['schedule'][base_index]
        base_employee['schedule'][base_index] = row['shift_code']
        base_employee['name'] = row['name']

        current = work_employee['schedule'][work_index]
        if current == row['shift_code']:
            continue
        if current == previous_baseline:
            work_employee['schedule'][work_index] = row['shift_code']
            stats['cells_updated'] += 1
        else:
            stats['cells_kept'] += 1

    return stats


def import_roster_csv(session, tenant, text, actor):
    """Validate and merge a CSV file into the tenant's roster. Returns stats."""
    rows = parse_roster_csv(text, shift_definitions_for(tenant.settings))

    document = roster_store.load_document(session, tenant.id, for_update=True)
    data = roster_store.working_copy(document)
    baseline = roster_store.baseline_copy(document)

    stats = merge_import(data, baseline, rows)

    roster_store.save_document(session, document, data, actor, baseline=baseline)
    session.commit()

    logger.info(
        f"[CSV] Import for tenant {tenant.id} by {actor}: {stats['rows']} rows, "
        f"{stats['dates_added']} new dates, {stats['employees_added']} new employees, "
        f"{stats['cells_updated']} cells updated, {stats['cells_kept']} admin edits kept"
    )
    return stats


def export_roster_csv(session, tenant, month=None):
    """Serialize the working roster in the import format, optionally for one YYYY-MM."""
    if month and not is_valid_month(month):
        raise ValidationError(f'Invalid month: {month} (expected YYYY-MM)')

    document = roster_store.load_document(session, tenant.id)
    data = roster_store.working_copy(document)

    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_COLUMNS)

    for index, iso_date in enumerate(data['dates']):
        if month and month_of(iso_date) != month:
            continue
        for team_name, employee in roster_store.iter_employees(data):
            if team_name == INACTIVE_TEAM:
                continue
            writer.writerow([
                iso_date, employee['id'], employee['name'], team_name, employee['schedule'][index]
            ])

    return output.getvalue()
