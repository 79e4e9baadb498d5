"""
CSV Import Routes.

Endpoints:
- POST /applications/import/validate : map columns, validate rows, flag duplicates
- POST /applications/import/execute  : create the accepted rows
- GET  /applications/import/template : example CSV download
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.core.exceptions import ValidationError
from applyos.core.logging_config import get_logger
from applyos.models.applications import ImportExecuteRequest, ImportValidateRequest
from applyos.services.application_service import get_application_service
from applyos.services.csv_import import (
    TEMPLATE_FILENAME,
    CSVFormatError,
    execute_import,
    generate_csv_template,
    mark_duplicates,
    validate_csv,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/applications/import", tags=["Import"])


@router.post("/validate", dependencies=[Depends(rate_limit("upload"))])
def validate_import(
    body: ImportValidateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """Validation result with every accepted row flagged isDuplicate or not."""
    try:
        result = validate_csv(body.csv)
    except CSVFormatError as e:
        raise ValidationError(str(e), field="csv")

    existing = get_application_service().list_applications(user.id)
    result["applications"] = mark_duplicates(result["applications"], existing)
    result["duplicateCount"] = sum(1 for app in result["applications"] if app["isDuplicate"])
    logger.info(f"Import preview for {user.id[:8]}: {result['duplicateCount']} duplicates flagged")
    return result


@router.post("/execute", dependencies=[Depends(rate_limit("upload"))])
def execute(body: ImportExecuteRequest, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    if not body.applications:
        raise ValidationError("No applications to import", field="applications")
    return execute_import(user.id, body.applications, skip_duplicates=body.skip_duplicates)


@router.get("/template", summary="Download the example CSV")
def template() -> Response:
    return Response(
        content=generate_csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
