"""
Content Service Lambda Handler
==============================
News and blogs, admin only. The same five routes are registered under both
collections:

  GET    /admin/{news|blogs}[?industryId=]
  GET    /admin/{news|blogs}/{id}
  POST   /admin/{news|blogs}
  PUT    /admin/{news|blogs}/{id}
  DELETE /admin/{news|blogs}/{id}
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateArticleRequest, UpdateArticleRequest

from .repository import ArticleRepository

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()
COLLECTIONS = {"news": "news", "blogs": "blog"}


def handler(event: dict, context) -> dict:
    tables = PortalTables(PortalConfig.from_env())
    return router.dispatch(event, tables, service="content_service")


def _register(collection: str, kind: str) -> None:
    base = f"/admin/{collection}"
    noun = "News" if kind == "news" else "Blog"

    @router.route("GET", base)
    def _list(request: Request, tables: PortalTables):
        require_role(request.event, "admin")
        return 200, ArticleRepository(tables, kind).list(request.query.get("industryId"))

    @router.route("GET", base + "/{id}")
    def _get(request: Request, tables: PortalTables):
        require_role(request.event, "admin")
        return 200, ArticleRepository(tables, kind).get(request.path_params["id"])

    @router.route("POST", base)
    def _create(request: Request, tables: PortalTables):
        user = require_role(request.event, "admin")
        body = CreateArticleRequest(**request.json())
        return 201, ArticleRepository(tables, kind).create(body.sent_fields(), created_by=user.user_id)

    @router.route("PUT", base + "/{id}")
    def _update(request: Request, tables: PortalTables):
        require_role(request.event, "admin")
        body = UpdateArticleRequest(**request.json())
        return 200, ArticleRepository(tables, kind).update(
            request.path_params["id"], body.changes(), expected_version=body.version
        )

    @router.route("DELETE", base + "/{id}")
    def _delete(request: Request, tables: PortalTables):
        require_role(request.event, "admin")
        ArticleRepository(tables, kind).delete(request.path_params["id"])
        return 200, {"message": f"{noun} deleted"}


for _collection, _kind in COLLECTIONS.items():
    _register(_collection, _kind)
