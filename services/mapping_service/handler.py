"""
Mapping Service Lambda Handler
==============================
Routes (admin or specialist):
  POST   /specialist/use-cases/{id}/solutions/{solutionId}   → link
  DELETE /specialist/use-cases/{id}/solutions/{solutionId}   → unlink, refused while customer cases exist
  GET    /specialist/use-cases/{id}/solutions                → solutions linked to a use case
  GET    /specialist/solutions/{id}/use-cases                → use cases linked to a solution

Path parameters reuse `{id}` at each level, matching the use case and solution
routes that share these API Gateway resources.
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router

from .repository import MappingRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()
ROLES = ("admin", "specialist")


def handler(event: dict, context) -> dict:
    repo = MappingRepository(PortalTables(PortalConfig.from_env()))
    return router.dispatch(event, repo, service="mapping_service")


@router.route("POST", "/specialist/use-cases/{id}/solutions/{solutionId}")
def _link(request: Request, repo: MappingRepository):
    user = require_role(request.event, *ROLES)
    params = request.path_params
    return 201, repo.create(user, params["id"], params["solutionId"])


@router.route("DELETE", "/specialist/use-cases/{id}/solutions/{solutionId}")
def _unlink(request: Request, repo: MappingRepository):
    user = require_role(request.event, *ROLES)
    params = request.path_params
    repo.delete(user, params["id"], params["solutionId"])
    return 200, {"message": "Mapping deleted"}


@router.route("GET", "/specialist/use-cases/{id}/solutions")
def _solutions(request: Request, repo: MappingRepository):
    require_role(request.event, *ROLES)
    return 200, repo.solutions_for_use_case(request.path_params["id"])


@router.route("GET", "/specialist/solutions/{id}/use-cases")
def _use_cases(request: Request, repo: MappingRepository):
    require_role(request.event, *ROLES)
    return 200, repo.use_cases_for_solution(request.path_params["id"])
