"""
Solution Service Lambda Handler
===============================
Routes (admin or specialist):
  GET    /admin/solutions                       → list (specialists: solutions mapped into their industries)
  GET    /admin/solutions/{id}                  → fetch
  POST   /admin/solutions                       → create
  PUT    /admin/solutions/{id}                  → partial update, version-checked
  DELETE /admin/solutions/{id}                  → delete, refused while customer cases or mappings exist
  POST   /admin/solutions/{id}/detail-markdown  → store the long-form markdown in S3
  GET    /admin/solutions/{id}/detail-markdown  → presigned URL for the markdown
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateSolutionRequest, MarkdownUploadRequest, UpdateSolutionRequest
from portal_shared.storage import DocumentStore

from .repository import SolutionRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()
ROLES = ("admin", "specialist")


def handler(event: dict, context) -> dict:
    config = PortalConfig.from_env()
    repo = SolutionRepository(PortalTables(config), DocumentStore(config))
    return router.dispatch(event, repo, service="solution_service")


@router.route("GET", "/admin/solutions")
def _list(request: Request, repo: SolutionRepository):
    user = require_role(request.event, *ROLES)
    return 200, repo.list(user)


@router.route("GET", "/admin/solutions/{id}")
def _get(request: Request, repo: SolutionRepository):
    require_role(request.event, *ROLES)
    return 200, repo.get(request.path_params["id"])


@router.route("POST", "/admin/solutions")
def _create(request: Request, repo: SolutionRepository):
    user = require_role(request.event, *ROLES)
    body = CreateSolutionRequest(**request.json())
    return 201, repo.create(body.sent_fields(), created_by=user.user_id)


@router.route("PUT", "/admin/solutions/{id}")
def _update(request: Request, repo: SolutionRepository):
    require_role(request.event, *ROLES)
    body = UpdateSolutionRequest(**request.json())
    return 200, repo.update(request.path_params["id"], body.changes(), expected_version=body.version)


@router.route("DELETE", "/admin/solutions/{id}")
def _delete(request: Request, repo: SolutionRepository):
    require_role(request.event, *ROLES)
    repo.delete(request.path_params["id"])
    return 200, {"message": "Solution deleted"}


@router.route("POST", "/admin/solutions/{id}/detail-markdown")
def _upload_markdown(request: Request, repo: SolutionRepository):
    require_role(request.event, *ROLES)
    body = MarkdownUploadRequest(**request.json())
    return 200, repo.upload_markdown(request.path_params["id"], body.markdown_content)


@router.route("GET", "/admin/solutions/{id}/detail-markdown")
def _markdown_url(request: Request, repo: SolutionRepository):
    require_role(request.event, *ROLES)
    return 200, repo.markdown_url(request.path_params["id"])
