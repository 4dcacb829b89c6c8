"""
API Gateway plumbing shared by every service handler.

A service declares its routes once:

    router = Router()

    @router.route("PUT", "/admin/industries/{id}")
    def _update(request: Request, ctx): ...

and its Lambda entry point calls `router.dispatch(event, ctx, service=...)`.
Dispatch matches method + path, runs the route, and converts exceptions into
the `{"error": {...}}` envelope. Routes return `(status, body)`.
"""
from __future__ import annotations

import base64
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from portal_shared.errors import NotFoundError, PortalError, ValidationError
from portal_shared.logger import get_logger, request_context

logger = get_logger(__name__)

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,DELETE,OPTIONS",
}

_PARAM = re.compile(r"\{(\w+)\}")


@dataclass
class Request:
    method: str
    path: str
    path_params: dict[str, str]
    query: dict[str, str]
    event: dict = field(repr=False)

    def json(self) -> dict:
        raw = self.event.get("body")
        if not raw:
            return {}
        if self.event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        try:
            body = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError("Request body is not valid JSON") from e
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body


class Router:
    def __init__(self):
        self._routes: list[tuple[str, re.Pattern, Callable]] = []

    def route(self, method: str, template: str):
        pattern = re.compile("^" + _PARAM.sub(r"(?P<\1>[^/]+)", template.rstrip("/")) + "/?$")

        def register(fn: Callable) -> Callable:
            self._routes.append((method.upper(), pattern, fn))
            return fn

        return register

    def dispatch(self, event: dict, ctx: Any, *, service: str) -> dict:
        method = (event.get("httpMethod") or "").upper()
        path = event.get("path") or ""
        request_id = (event.get("requestContext") or {}).get("requestId")

        with request_context(request_id=request_id, http_method=method, path=path):
            if method == "OPTIONS":
                return response(200, {})
            try:
                for route_method, pattern, fn in self._routes:
                    match = pattern.match(path)
                    if match and route_method == method:
                        request = Request(
                            method=method,
                            path=path,
                            path_params=match.groupdict(),
                            query=event.get("queryStringParameters") or {},
                            event=event,
                        )
                        status, body = fn(request, ctx)
                        return response(status, body)
                raise NotFoundError(f"No route for {method} {path}")
            except PortalError as e:
                if e.status >= 500:
                    logger.exception("Request failed", extra={"code": e.code})
                else:
                    logger.info("Request rejected", extra={"code": e.code, "reason": e.message})
                return response(e.status, e.to_body())
            except PydanticValidationError as e:
                details = [
                    {"field": ".".join(str(p) for p in err["loc"]), "constraint": err["type"], "message": err["msg"]}
                    for err in e.errors()
                ]
                body = ValidationError("Request validation failed", {"errors": details}).to_body()
                return response(400, body)
            except Exception:
                logger.exception(f"Unhandled exception in {service} handler")
                return response(500, {"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}})


def response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body, default=str),
    }
