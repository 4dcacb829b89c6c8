"""
Use Case Service Lambda Handler
===============================
Routes (admin or specialist; specialists limited to assigned industries):
  GET    /specialist/use-cases                          → list
  GET    /specialist/use-cases/{id}                     → fetch
  POST   /specialist/use-cases                          → create under a sub-industry
  PUT    /specialist/use-cases/{id}                     → partial update, version-checked
  DELETE /specialist/use-cases/{id}                     → delete, refused while mapped to solutions
  POST   /specialist/use-cases/{id}/documents           → attach a base64 document
  DELETE /specialist/use-cases/{id}/documents/{docId}   → detach a document
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all, xray_recorder

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateUseCaseRequest, DocumentUploadRequest, UpdateUseCaseRequest
from portal_shared.storage import DocumentStore

from .repository import UseCaseRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()
ROLES = ("admin", "specialist")


def handler(event: dict, context) -> dict:
    config = PortalConfig.from_env()
    repo = UseCaseRepository(PortalTables(config), DocumentStore(config))
    return router.dispatch(event, repo, service="use_case_service")


@router.route("GET", "/specialist/use-cases")
def _list(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    return 200, repo.list(user)


@router.route("GET", "/specialist/use-cases/{id}")
def _get(request: Request, repo: UseCaseRepository):
    require_role(request.event, *ROLES)
    return 200, repo.get(request.path_params["id"])


@router.route("POST", "/specialist/use-cases")
def _create(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    body = CreateUseCaseRequest(**request.json())
    return 201, repo.create(user, body.sub_industry_id, body.name, body.description)


@router.route("PUT", "/specialist/use-cases/{id}")
def _update(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    body = UpdateUseCaseRequest(**request.json())
    return 200, repo.update(user, request.path_params["id"], body.changes(), expected_version=body.version)


@router.route("DELETE", "/specialist/use-cases/{id}")
def _delete(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    repo.delete(user, request.path_params["id"])
    return 200, {"message": "Use case deleted"}


@router.route("POST", "/specialist/use-cases/{id}/documents")
def _upload_document(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    body = DocumentUploadRequest(**request.json())
    with xray_recorder.in_subsegment("upload_use_case_document"):
        document = repo.add_document(user, request.path_params["id"], body)
    return 201, {"document": document, "message": "Document uploaded"}


@router.route("DELETE", "/specialist/use-cases/{id}/documents/{docId}")
def _delete_document(request: Request, repo: UseCaseRepository):
    user = require_role(request.event, *ROLES)
    repo.remove_document(user, request.path_params["id"], request.path_params["docId"])
    return 200, {"message": "Document deleted"}
