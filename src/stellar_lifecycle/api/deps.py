"""Shared route dependencies and error mapping."""

from typing import Optional

from fastapi import Header, HTTPException, Request

from stellar_lifecycle.config import Settings
from stellar_lifecycle.custodial.crossmint import CrossmintClient
from stellar_lifecycle.errors import (
    ConfigurationError,
    LifecycleError,
    LockTimeoutError,
    OperationFailed,
    OperationTimedOut,
    SubmissionRejected,
    TransportError,
)
from stellar_lifecycle.lifecycle.orchestrator import LifecycleOrchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> LifecycleOrchestrator:
    return request.app.state.orchestrator


def get_custodial_client(request: Request) -> CrossmintClient:
    return request.app.state.custodial


async def require_admin_token(
    request: Request, x_admin_token: Optional[str] = Header(None)
) -> bool:
    """Verify admin token from header.

    If ADMIN_TOKEN is not set, allows access (dev mode).
    """
    settings = get_app_settings(request)

    if not settings.admin_token:
        return True

    if x_admin_token != settings.admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")

    return True


def to_http_error(error: LifecycleError) -> HTTPException:
    """Map a lifecycle error to the HTTP status callers should see."""
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SubmissionRejected):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, TransportError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, OperationTimedOut):
        return HTTPException(status_code=202, detail=str(error))
    if isinstance(error, OperationFailed):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, LockTimeoutError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
