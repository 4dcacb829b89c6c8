"""
Customer Case Service Lambda Handler
====================================
Routes (admin or specialist):
  GET    /specialist/customer-cases[?solutionId=]             → list
  GET    /specialist/customer-cases/{id}                      → fetch
  POST   /specialist/customer-cases                           → create for a mapped (solution, use case) pair
  PUT    /specialist/customer-cases/{id}                      → partial update, version-checked
  DELETE /specialist/customer-cases/{id}                      → delete (documents removed from S3)
  POST   /specialist/customer-cases/{id}/documents            → attach a base64 document
  DELETE /specialist/customer-cases/{id}/documents/{docId}    → detach a document
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all, xray_recorder

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateCustomerCaseRequest, DocumentUploadRequest, UpdateCustomerCaseRequest
from portal_shared.storage import DocumentStore

from .repository import CustomerCaseRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()
ROLES = ("admin", "specialist")


def handler(event: dict, context) -> dict:
    config = PortalConfig.from_env()
    repo = CustomerCaseRepository(PortalTables(config), DocumentStore(config))
    return router.dispatch(event, repo, service="customer_case_service")


@router.route("GET", "/specialist/customer-cases")
def _list(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    return 200, repo.list(user, request.query.get("solutionId"))


@router.route("GET", "/specialist/customer-cases/{id}")
def _get(request: Request, repo: CustomerCaseRepository):
    require_role(request.event, *ROLES)
    return 200, repo.get(request.path_params["id"])


@router.route("POST", "/specialist/customer-cases")
def _create(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    body = CreateCustomerCaseRequest(**request.json())
    return 201, repo.create(user, body.solution_id, body.use_case_id, body.name, body.description)


@router.route("PUT", "/specialist/customer-cases/{id}")
def _update(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    body = UpdateCustomerCaseRequest(**request.json())
    return 200, repo.update(user, request.path_params["id"], body.changes(), expected_version=body.version)


@router.route("DELETE", "/specialist/customer-cases/{id}")
def _delete(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    repo.delete(user, request.path_params["id"])
    return 200, {"message": "Customer case deleted"}


@router.route("POST", "/specialist/customer-cases/{id}/documents")
def _upload_document(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    body = DocumentUploadRequest(**request.json())
    with xray_recorder.in_subsegment("upload_customer_case_document"):
        document = repo.add_document(user, request.path_params["id"], body)
    return 201, {"document": document, "message": "Document uploaded"}


@router.route("DELETE", "/specialist/customer-cases/{id}/documents/{docId}")
def _delete_document(request: Request, repo: CustomerCaseRepository):
    user = require_role(request.event, *ROLES)
    repo.remove_document(user, request.path_params["id"], request.path_params["docId"])
    return 200, {"message": "Document deleted"}
