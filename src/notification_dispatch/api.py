"""FastAPI application factory and HTTP schemas for the notification service.

This module provides the REST API of the notification dispatcher:

- Pydantic models defining request/response schemas
- A factory function to create and configure the FastAPI application
- Optional authentication via API token in the X-API-Token header
- Blacklist administration, event dispatch, health and metrics endpoints

Every error response has the shape
``{"status": <http status>, "code": <error code>, "message": <text>}``.

Example:
    Creating and running the API application::

        from notification_dispatch.core import NotificationService
        from notification_dispatch.api import create_app

        service = NotificationService.from_settings(settings)
        app = create_app(service, api_token="secret-token")

        # Run with uvicorn
        uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from typing import Any, AsyncContextManager, Callable, List, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, ConfigDict, Field

from .addresses import normalize_address
from .core import HEALTHY, NotificationService
from .errors import InvalidEmail, StoreError
from .logger import get_logger

logger = get_logger("API")

service: NotificationService | None = None
API_TOKEN_HEADER_NAME = "X-API-Token"
api_key_scheme = APIKeyHeader(name=API_TOKEN_HEADER_NAME, auto_error=False)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_code, "code": code, "message": message})


async def require_token(request: Request, api_token: str | None = Depends(api_key_scheme)) -> None:
    """Validate the API token carried in the ``X-API-Token`` header.

    If a token has been configured through :func:`create_app` and a request
    provides either a missing or different value, a ``401`` error is raised.
    When no token is configured the dependency is effectively bypassed.
    """
    expected = getattr(request.app.state, "api_token", None)
    if expected is None:
        return
    if not api_token or api_token != expected:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or missing API token")


auth_dependency = Depends(require_token)


def _get_service() -> NotificationService:
    if not service:
        raise HTTPException(500, "Service not initialized")
    return service


class BlacklistRequest(BaseModel):
    """Body of ``POST /notification``."""
    model_config = ConfigDict(populate_by_name=True)
    email: str = Field(alias="Email")


class BlacklistResponse(BaseModel):
    is_successful: bool
    email: str


class BlacklistEntryInfo(BaseModel):
    email: str
    date: int


class BlacklistEntriesResponse(BaseModel):
    entries: List[BlacklistEntryInfo]


class OutcomeInfo(BaseModel):
    record_id: Optional[str] = None
    status: Literal["sent", "skipped", "failed"]
    delivery_id: Optional[str] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None


class DispatchResponse(BaseModel):
    outcomes: List[OutcomeInfo]


class HealthResponse(BaseModel):
    status: str


def create_app(
    svc: NotificationService,
    api_token: str | None = None,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    svc:
        Service exposing the dispatcher, admin service and metrics.
    api_token:
        Optional secret used to protect the administrative endpoints. When
        provided, the ``X-API-Token`` header must match this value.
        ``/health`` is always public.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    global service
    service = svc

    api = FastAPI(title="Notification Dispatch Service", lifespan=lifespan)
    api.state.api_token = api_token
    router = APIRouter(prefix="/notification", tags=["blacklist"], dependencies=[auth_dependency])

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report body validation failures as ``invalid_request``."""
        logger.error("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
        messages = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", messages or "Invalid request")

    @api.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code = "unauthorized" if exc.status_code == status.HTTP_401_UNAUTHORIZED else "http_error"
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            code = "not_found"
        return error_response(exc.status_code, code, str(exc.detail))

    @api.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint for container monitoring (no authentication required)."""
        svc_status = await _get_service().check_health()
        status_code = status.HTTP_200_OK if svc_status == HEALTHY else status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(status_code=status_code, content={"status": svc_status})

    @router.post("", response_model=BlacklistResponse, status_code=status.HTTP_201_CREATED)
    async def add_to_blacklist(payload: BlacklistRequest):
        """Add an address to the blacklist. The stored address is lowercase."""
        svc = _get_service()
        try:
            entry = await svc.admin.add_to_blacklist(payload.email)
        except InvalidEmail as exc:
            return error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", str(exc))
        except StoreError:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"is_successful": False, "email": normalize_address(payload.email)},
            )
        return BlacklistResponse(is_successful=True, email=entry.email)

    @router.get("/{email}", response_model=BlacklistEntryInfo)
    async def get_blacklist_entry(email: str):
        """Return the blacklist entry for ``email``."""
        svc = _get_service()
        try:
            entry = await svc.admin.get_entry(email)
        except InvalidEmail as exc:
            return error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", str(exc))
        except StoreError as exc:
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, str(exc))
        if entry is None:
            raise HTTPException(404, f"'{email}' is not blacklisted")
        return BlacklistEntryInfo(email=entry.email, date=entry.date)

    @router.delete("/{email}", response_model=BlacklistResponse)
    async def remove_from_blacklist(email: str):
        """Remove ``email`` from the blacklist."""
        svc = _get_service()
        try:
            removed = await svc.admin.remove_from_blacklist(email)
        except InvalidEmail as exc:
            return error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", str(exc))
        except StoreError as exc:
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, str(exc))
        return BlacklistResponse(is_successful=removed, email=normalize_address(email))

    @api.get("/blacklist", response_model=BlacklistEntriesResponse, dependencies=[auth_dependency])
    async def list_blacklist(limit: int = 100):
        """List blacklist entries."""
        svc = _get_service()
        try:
            entries = await svc.admin.list_entries(limit)
        except StoreError as exc:
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, str(exc))
        return BlacklistEntriesResponse(
            entries=[BlacklistEntryInfo(email=entry.email, date=entry.date) for entry in entries]
        )

    @api.post("/events", response_model=DispatchResponse, dependencies=[auth_dependency])
    async def dispatch_event(event: dict[str, Any]):
        """Dispatch an SNS-shaped notification event and return the ordered outcomes."""
        outcomes = await _get_service().dispatch_sns_event(event)
        return DispatchResponse(
            outcomes=[
                OutcomeInfo(
                    record_id=outcome.record_id,
                    status=outcome.status,
                    delivery_id=outcome.delivery_id,
                    reason=outcome.reason,
                    error_code=outcome.error_code,
                )
                for outcome in outcomes
            ]
        )

    @api.get("/metrics", dependencies=[auth_dependency])
    async def metrics():
        """Expose Prometheus metrics collected by the dispatcher."""
        return Response(content=_get_service().metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    api.include_router(router)
    return api
