"""
User Service Lambda Handler
===========================
Admin-only user management backed by Cognito plus the Users table mirror.

  GET    /admin/users
  GET    /admin/users/{id}
  POST   /admin/users          {email, role, assignedIndustries?}
  PUT    /admin/users/{id}     {role?, assignedIndustries?}
  DELETE /admin/users/{id}
"""
from __future__ import annotations

from aws_xray_sdk.core import patch_all

from portal_shared.auth import require_role
from portal_shared.config import PortalConfig
from portal_shared.dynamodb import PortalTables
from portal_shared.http import Request, Router
from portal_shared.models import CreateUserRequest, UpdateUserRequest

from .repository import UserDirectory

patch_all()

from portal_shared.logger import get_logger
logger = get_logger(__name__)

router = Router()


def handler(event: dict, context) -> dict:
    config = PortalConfig.from_env()
    directory = UserDirectory(PortalTables(config), config)
    return router.dispatch(event, directory, service="user_service")


@router.route("GET", "/admin/users")
def _list(request: Request, directory: UserDirectory):
    require_role(request.event, "admin")
    return 200, directory.list()


@router.route("GET", "/admin/users/{id}")
def _get(request: Request, directory: UserDirectory):
    require_role(request.event, "admin")
    return 200, directory.get(request.path_params["id"])


@router.route("POST", "/admin/users")
def _create(request: Request, directory: UserDirectory):
    require_role(request.event, "admin")
    body = CreateUserRequest(**request.json())
    return 201, directory.create(body.email, body.role, body.assigned_industries)


@router.route("PUT", "/admin/users/{id}")
def _update(request: Request, directory: UserDirectory):
    require_role(request.event, "admin")
    body = UpdateUserRequest(**request.json())
    return 200, directory.update(request.path_params["id"], body.role, body.assigned_industries)


@router.route("DELETE", "/admin/users/{id}")
def _delete(request: Request, directory: UserDirectory):
    require_role(request.event, "admin")
    directory.delete(request.path_params["id"])
    return 200, {"message": "User deleted"}
