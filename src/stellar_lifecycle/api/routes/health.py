"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from stellar_lifecycle import __version__
from stellar_lifecycle.api.deps import (
    get_app_settings,
    get_orchestrator,
    require_admin_token,
    to_http_error,
)
from stellar_lifecycle.errors import LifecycleError

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "stellar-lifecycle"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = get_app_settings(request)
    return {
        "status": "healthy",
        "service": "stellar-lifecycle",
        "version": __version__,
        "config": settings.get_safe_dict(),
    }


@router.get("/health/resource")
async def resource_health(request: Request, install: bool = False):
    """Managed contract code status.

    With ?install=true, installs or restores the code when needed
    (admin token required when ADMIN_TOKEN is set).
    """
    settings = get_app_settings(request)
    orchestrator = get_orchestrator(request)
    resource = request.app.state.resource

    if resource is None:
        raise HTTPException(status_code=503, detail="Managed resource is not configured")

    if install:
        await require_admin_token(request, request.headers.get("x-admin-token"))

    try:
        health = await orchestrator.resource_health(
            resource.fingerprint,
            install=install,
            resource_bytes=resource.content,
        )
    except LifecycleError as e:
        raise to_http_error(e)

    return {
        "status": "ok",
        "network": settings.stellar_network,
        "rpc_url": settings.soroban_rpc_url,
        **health.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/health/resource/maintain", dependencies=[Depends(require_admin_token)])
async def maintain_resource(request: Request):
    """Run the full maintenance flow: ensure live, then extend TTL if low."""
    orchestrator = get_orchestrator(request)
    resource = request.app.state.resource

    if resource is None or resource.content is None:
        raise HTTPException(status_code=503, detail="Managed resource file is not available")

    try:
        report = await orchestrator.keep_resource_alive(resource.fingerprint, resource.content)
    except LifecycleError as e:
        raise to_http_error(e)

    return {
        "status": "ok",
        "fingerprint": resource.fingerprint.hex,
        "resource": report.status.to_dict(),
        "provision": report.provision.to_dict(),
        "ttl_extension": report.ttl_extension.to_dict() if report.ttl_extension else None,
    }
