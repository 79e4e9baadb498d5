"""
CSV Import - Bulk application import from spreadsheets.

Workflow:
1. validate_csv() maps loosely named columns onto application fields and
   checks each row independently
2. mark_duplicates() flags rows that already exist for the user
3. execute_import() creates the selected rows, collecting per-row failures

generate_csv_template() produces the downloadable example file.
"""
import csv
from io import StringIO
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from applyos.core.exceptions import ApplyOSException
from applyos.core.logging_config import get_logger
from applyos.core.validators import is_http_url
from applyos.database.models import APPLICATION_PRIORITIES, APPLICATION_STATUSES, APPLICATION_TYPES

logger = get_logger(__name__)

TEMPLATE_FILENAME = "applyos-import-template.csv"

# Accepted header spellings per application field (compared lower-cased)
COLUMN_MAPPING: Dict[str, List[str]] = {
    "title": ["title", "position", "job title", "position title", "job name", "role", "position name"],
    "company": ["company", "company name", "employer", "organization", "org", "company/organization"],
    "url": ["url", "link", "application url", "application link", "company website", "job url", "job link"],
    "status": ["status", "application status", "state"],
    "priority": ["priority", "importance", "urgency"],
    "type": ["type", "application type", "category", "job type", "position type"],
    "deadline": ["deadline", "due date", "due", "application deadline", "closing date", "end date", "date"],
    "notes": ["notes", "description", "job description", "details", "comments", "remarks"],
}

TEMPLATE_HEADERS = ["Title", "Company", "URL", "Status", "Priority", "Type", "Deadline", "Notes"]
TEMPLATE_ROWS = [
    ["Software Engineer", "Google", "https://careers.google.com/jobs/123", "submitted", "high", "job",
     "2024-12-31", "Full-stack role in Mountain View"],
    ["Product Manager", "Stripe", "https://stripe.com/jobs/456", "interview", "high", "job",
     "2025-01-15", "Fintech payments team"],
    ["ML Fellowship", "OpenAI", "", "draft", "medium", "internship",
     "2025-02-28", "Research focus on LLMs"],
]


class CSVFormatError(ValueError):
    """The file cannot be imported at all (as opposed to per-row errors)."""


def normalize_column_name(name: str) -> Optional[str]:
    """
    Map a CSV header onto an application field, or None if unknown.

    >>> normalize_column_name("  Job Title ")
    'title'
    """
    normalized = name.strip().strip("\"'").lower()
    for field_name, variations in COLUMN_MAPPING.items():
        if normalized in variations:
            return field_name
    return None


def map_headers(headers: Iterable[str]) -> Dict[str, int]:
    """Field name -> column index. A later duplicate column wins."""
    header_map: Dict[str, int] = {}
    for index, header in enumerate(headers):
        field_name = normalize_column_name(header)
        if field_name:
            header_map[field_name] = index
    return header_map


def parse_deadline(value: str) -> Optional[str]:
    """
    Parse a human-entered date into an ISO-8601 UTC string.

    Accepts '2024-12-31', 'December 31, 2024', '12/31/2024' and similar.
    Returns None when the value is not a date.
    """
    try:
        parsed = pd.to_datetime(value, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.tz_convert(None).to_pydatetime().isoformat()


def _read_rows(csv_text: str) -> List[List[str]]:
    # Excel exports start with a UTF-8 BOM
    text = csv_text.lstrip("\ufeff").strip()
    reader = csv.reader(StringIO(text), skipinitialspace=True)
    try:
        return [row for row in reader]
    except csv.Error as e:
        raise CSVFormatError("Invalid CSV format") from e


def _cell(row: List[str], header_map: Dict[str, int], field_name: str) -> str:
    index = header_map.get(field_name)
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _validate_row(row: List[str], header_map: Dict[str, int]):
    """Returns (application or None, list of error strings)."""
    title = _cell(row, header_map, "title")
    if not title:
        return None, ['Missing required "title" field']

    errors: List[str] = []
    application: Dict[str, Any] = {"title": title}

    company = _cell(row, header_map, "company")
    if company:
        application["company"] = company

    url = _cell(row, header_map, "url")
    if url:
        if is_http_url(url):
            application["url"] = url
        else:
            errors.append(f'Invalid URL: "{url}"')

    for field_name, allowed in (
        ("status", APPLICATION_STATUSES),
        ("priority", APPLICATION_PRIORITIES),
        ("type", APPLICATION_TYPES),
    ):
        value = _cell(row, header_map, field_name).lower()
        if not value:
            continue
        if value in allowed:
            application[field_name] = value
        else:
            errors.append(f'Invalid {field_name} "{value}". Must be one of: {", ".join(allowed)}')

    deadline = _cell(row, header_map, "deadline")
    if deadline:
        parsed = parse_deadline(deadline)
        if parsed:
            application["deadline"] = parsed
        else:
            errors.append(
                f'Invalid deadline date "{deadline}". Use format like "2024-12-31" or "December 31, 2024"'
            )

    notes = _cell(row, header_map, "notes")
    if notes:
        application["job_description"] = notes

    return application, errors


def validate_csv(csv_text: str) -> Dict[str, Any]:
    """
    Validate CSV text and collect importable applications.

    Rows are numbered as a spreadsheet user sees them: the header is row 1,
    so the first data row is row 2. Blank lines are skipped and do not
    count. A row with any error is left out of "applications".

    Raises:
        CSVFormatError: empty file, no headers, or no title column
    """
    if not csv_text or not csv_text.strip():
        raise CSVFormatError("CSV content is required")

    rows = _read_rows(csv_text)
    headers = rows[0] if rows else []
    if not any(h.strip() for h in headers):
        raise CSVFormatError("CSV has no headers")

    header_map = map_headers(headers)
    if "title" not in header_map:
        raise CSVFormatError('CSV must have a "title" or "position" column')

    data_rows = [row for row in rows[1:] if any(cell.strip() for cell in row)]

    applications: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []

    for row_num, row in enumerate(data_rows, start=2):
        application, row_errors = _validate_row(row, header_map)
        if row_errors:
            errors.append({"row": row_num, "errors": row_errors})
        elif application:
            applications.append(application)

    logger.info(
        f"CSV validated: {len(data_rows)} rows, {len(applications)} valid, {len(errors)} with errors"
    )

    return {
        "valid": True,
        "applications": applications,
        "rowCount": len(data_rows),
        "errorCount": len(errors),
        "errors": errors,
    }


def is_duplicate(candidate: Dict[str, Any], existing: Dict[str, Any]) -> bool:
    """Same title (case-insensitive) and either both URLs blank or equal ignoring case."""
    if (candidate.get("title") or "").lower() != (existing.get("title") or "").lower():
        return False
    candidate_url = (candidate.get("url") or "").lower()
    existing_url = (existing.get("url") or "").lower()
    return candidate_url == existing_url


def mark_duplicates(
    applications: List[Dict[str, Any]],
    existing: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Copy each application with an isDuplicate flag against existing rows."""
    return [
        {**app, "isDuplicate": any(is_duplicate(app, other) for other in existing)}
        for app in applications
    ]


def generate_csv_template() -> str:
    """Header plus three example rows, every cell quoted."""
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue().rstrip("\n")


def execute_import(
    user_id: str,
    applications: List[Dict[str, Any]],
    skip_duplicates: bool = True,
) -> Dict[str, Any]:
    """
    Create applications from validated rows.

    Rows flagged isDuplicate are skipped when skip_duplicates is set.
    A failing row is recorded in "failures" and does not stop the rest.
    """
    from applyos.services.application_service import get_application_service

    service = get_application_service()
    imported: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    skipped = 0

    for app in applications:
        if skip_duplicates and app.get("isDuplicate"):
            skipped += 1
            continue

        data = {k: v for k, v in app.items() if k != "isDuplicate"}
        try:
            imported.append(service.create_application(user_id, data))
        except ApplyOSException as e:
            failures.append({"title": app.get("title"), "error": e.message})

    logger.info(
        f"CSV import for user {user_id[:8]}: {len(imported)} imported, "
        f"{len(failures)} failed, {skipped} duplicates skipped"
    )

    return {
        "success": True,
        "imported": len(imported),
        "failed": len(failures),
        "skipped": skipped,
        "applications": imported,
        "failures": failures,
    }
