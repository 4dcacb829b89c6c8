"""
Public Browsing Lambda Handler
==============================
Anonymous, read-only. Mounted without an authorizer.

  GET /public/industries
  GET /public/industries/{id}
  GET /public/industries/{id}/sub-industries
  GET /public/sub-industries/{id}/use-cases
  GET /public/use-cases/{id}
  GET /public/use-cases/{id}/solutions
  GET /public/solutions/{id}
  GET /public/solutions/{id}/use-cases
  GET /public/solutions/{id}/detail-markdown
  GET /public/solutions/{id}/customer-cases
  GET /public/news, /public/news/{id}, /public/blogs, /public/blogs/{id}
  GET /public/documents/{id}/download?s3Key=...
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.storage import DocumentStore

from .repository import PublicCatalog

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()


def handler(event: dict, context) -> dict:
    config = PortalConfig.from_env()
    catalog = PublicCatalog(PortalTables(config), DocumentStore(config))
    return router.dispatch(event, catalog, service="public_service")


# ---------------------------------------------------------------------------
# Catalog tree
# ---------------------------------------------------------------------------

@router.route("GET", "/public/industries")
def _industries(request: Request, catalog: PublicCatalog):
    return 200, catalog.industries()


@router.route("GET", "/public/industries/{id}")
def _industry(request: Request, catalog: PublicCatalog):
    return 200, catalog.industry(request.path_params["id"])


@router.route("GET", "/public/industries/{id}/sub-industries")
def _sub_industries(request: Request, catalog: PublicCatalog):
    return 200, catalog.sub_industries(request.path_params["id"])


@router.route("GET", "/public/sub-industries/{id}/use-cases")
def _use_cases(request: Request, catalog: PublicCatalog):
    return 200, catalog.use_cases(request.path_params["id"])


@router.route("GET", "/public/use-cases/{id}")
def _use_case(request: Request, catalog: PublicCatalog):
    return 200, catalog.use_case(request.path_params["id"])


@router.route("GET", "/public/use-cases/{id}/solutions")
def _use_case_solutions(request: Request, catalog: PublicCatalog):
    return 200, catalog.solutions_for_use_case(request.path_params["id"])


@router.route("GET", "/public/solutions/{id}")
def _solution(request: Request, catalog: PublicCatalog):
    return 200, catalog.solution(request.path_params["id"])


@router.route("GET", "/public/solutions/{id}/use-cases")
def _solution_use_cases(request: Request, catalog: PublicCatalog):
    return 200, catalog.solution_use_cases(request.path_params["id"])


@router.route("GET", "/public/solutions/{id}/detail-markdown")
def _solution_markdown(request: Request, catalog: PublicCatalog):
    return 200, catalog.solution_markdown(request.path_params["id"])


@router.route("GET", "/public/solutions/{id}/customer-cases")
def _customer_cases(request: Request, catalog: PublicCatalog):
    return 200, catalog.customer_cases(request.path_params["id"])


# ---------------------------------------------------------------------------
# Articles and documents
# ---------------------------------------------------------------------------

@router.route("GET", "/public/news")
def _news(request: Request, catalog: PublicCatalog):
    return 200, catalog.articles("news", request.query.get("industryId"))


@router.route("GET", "/public/news/{id}")
def _news_item(request: Request, catalog: PublicCatalog):
    return 200, catalog.article("news", request.path_params["id"])


@router.route("GET", "/public/blogs")
def _blogs(request: Request, catalog: PublicCatalog):
    return 200, catalog.articles("blog", request.query.get("industryId"))


@router.route("GET", "/public/blogs/{id}")
def _blog(request: Request, catalog: PublicCatalog):
    return 200, catalog.article("blog", request.path_params["id"])


@router.route("GET", "/public/documents/{id}/download")
def _download(request: Request, catalog: PublicCatalog):
    return 200, catalog.document_download(request.path_params["id"], request.query.get("s3Key"))
