"""
Industry Service Lambda Handler
===============================
Routes:
  GET    /admin/industries                  → list (admin, specialist)
  POST   /admin/industries                  → create (admin)
  PUT    /admin/industries/{id}             → partial update, version-checked (admin)
  DELETE /admin/industries/{id}             → delete, refused while sub-industries exist (admin)
  PATCH  /admin/industries/{id}/visibility  → show/hide on the public site (admin)
  POST   /admin/industries/import-csv       → bulk import (admin)

The handler is thin: auth → validation → repository. Store clients are built
per invocation from the environment.
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all, xray_recorder

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import (
    CreateIndustryRequest,
    CsvImportRequest,
    UpdateIndustryRequest,
    VisibilityRequest,
)

from .csv_import import CsvImporter
from .repository import IndustryRepository

# Patch boto3 clients for X-Ray distributed tracing
patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()


# ---------------------------------------------------------------------------
# Main handler
# ---------------------------------------------------------------------------

def handler(event: dict, context) -> dict:
    tables = PortalTables(PortalConfig.from_env())
    return router.dispatch(event, tables, service="industry_service")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.route("GET", "/admin/industries")
def _list_industries(request: Request, tables: PortalTables):
    require_role(request.event, "admin", "specialist")
    return 200, IndustryRepository(tables).list()


@router.route("POST", "/admin/industries/import-csv")
def _import_csv(request: Request, tables: PortalTables):
    user = require_role(request.event, "admin")
    body = CsvImportRequest(**request.json())
    with xray_recorder.in_subsegment("import_csv"):
        result = CsvImporter(tables).run(body.csv_content, created_by=user.user_id)
    return 200, result.to_dict()


@router.route("POST", "/admin/industries")
def _create_industry(request: Request, tables: PortalTables):
    user = require_role(request.event, "admin")
    body = CreateIndustryRequest(**request.json())
    fields = body.sent_fields()
    fields["isVisible"] = body.is_visible
    return 201, IndustryRepository(tables).create(fields, created_by=user.user_id)


@router.route("PUT", "/admin/industries/{id}")
def _update_industry(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = UpdateIndustryRequest(**request.json())
    industry = IndustryRepository(tables).update(
        request.path_params["id"], body.changes(), expected_version=body.version
    )
    return 200, industry


@router.route("DELETE", "/admin/industries/{id}")
def _delete_industry(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    IndustryRepository(tables).delete(request.path_params["id"])
    return 200, {"message": "Industry deleted"}


@router.route("PATCH", "/admin/industries/{id}/visibility")
def _set_visibility(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = VisibilityRequest(**request.json())
    industry = IndustryRepository(tables).set_visibility(
        request.path_params["id"], body.is_visible, expected_version=body.version
    )
    return 200, industry
