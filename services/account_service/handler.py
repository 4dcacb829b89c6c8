"""
Account Service Lambda Handler
==============================
Admin-only CRUD for the accounts catalog.

  GET    /admin/accounts[?type=customer|partner|vendor]
  GET    /admin/accounts/{id}
  POST   /admin/accounts
  PUT    /admin/accounts/{id}
  DELETE /admin/accounts/{id}
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateAccountRequest, UpdateAccountRequest

from .repository import AccountRepository

patch_all()

router = Router()


def handler(event: dict, context) -> dict:
    tables = PortalTables(PortalConfig.from_env())
    return router.dispatch(event, tables, service="account_service")


@router.route("GET", "/admin/accounts")
def list_accounts(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    return 200, AccountRepository(tables).list(request.query.get("type"))


@router.route("GET", "/admin/accounts/{id}")
def get_account(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    return 200, AccountRepository(tables).get(request.path_params["id"])


@router.route("POST", "/admin/accounts")
def create_account(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = CreateAccountRequest(**request.json())
    return 201, AccountRepository(tables).create(body.sent_fields())


@router.route("PUT", "/admin/accounts/{id}")
def update_account(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    body = UpdateAccountRequest(**request.json())
    return 200, AccountRepository(tables).update(
        request.path_params["id"], body.changes(), expected_version=body.version
    )


@router.route("DELETE", "/admin/accounts/{id}")
def delete_account(request: Request, tables: PortalTables):
    require_role(request.event, "admin")
    AccountRepository(tables).delete(request.path_params["id"])
    return 200, {"message": "Account deleted"}
