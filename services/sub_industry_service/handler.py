"""
Sub-Industry Service Lambda Handler
===================================
Routes:
  GET    /admin/sub-industries[?industryId=]             → list (admin, specialist)
  GET    /admin/industries/{id}/sub-industries   → list one industry's children
  GET    /admin/sub-industries/{id}                      → fetch
  POST   /admin/sub-industries                           → create under an existing industry (admin)
  PUT    /admin/sub-industries/{id}                      → partial update, version-checked (admin)
  DELETE /admin/sub-industries/{id}                      → delete, refused while use cases exist (admin)
  PATCH  /admin/sub-industries/{id}/move                 → re-parent to another industry (admin)
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all, xray_recorder

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateSubIndustryRequest, MoveSubIndustryRequest, UpdateSubIndustryRequest

from .repository import SubIndustryRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()


def handler(event: dict, context) -> dict:
    tables = PortalTables(PortalConfig.from_env())
    return router.dispatch(event, tables, service="sub_industry_service")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.route("GET", "/admin/sub-industries")
def _list(request: Request, tables: PortalTables):
    require_role(request.event, "admin", "specialist")
    return 200, SubIndustryRepository(tables).list(request.query.get("industryId"))


@router.route("GET", "/admin/industries/{id}/sub-industries")
def _list_for_industry(request: Request, tables: PortalTables):
    require_role(request.event, "admin", "specialist")
    return 200, SubIndustryRepository(tables).list(request.path_params["id"])


@router.route("GET", "/admin/sub-industries/{id}")
def _get(request: Request, tables: PortalTables):
    require_role(request.event, "admin", "specialist")
    return 200, SubIndustryRepository(tables).get(request.path_params["id"])


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.route("POST", "/admin/sub-industries")
def _create(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = CreateSubIndustryRequest(**request.json())
    fields = body.sent_fields(exclude={"industry_id"})
    return 201, SubIndustryRepository(tables).create(body.industry_id, fields)


@router.route("PUT", "/admin/sub-industries/{id}")
def _update(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = UpdateSubIndustryRequest(**request.json())
    return 200, SubIndustryRepository(tables).update(
        request.path_params["id"], body.changes(), expected_version=body.version
    )


@router.route("DELETE", "/admin/sub-industries/{id}")
def _delete(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    SubIndustryRepository(tables).delete(request.path_params["id"])
    return 200, {"message": "Sub-industry deleted"}


@router.route("PATCH", "/admin/sub-industries/{id}/move")
def _move(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = MoveSubIndustryRequest(**request.json())
    with xray_recorder.in_subsegment("move_sub_industry"):
        moved = SubIndustryRepository(tables).move(
            request.path_params["id"], body.new_industry_id, expected_version=body.version
        )
    return 200, moved
