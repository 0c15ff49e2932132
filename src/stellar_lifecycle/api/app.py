"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stellar_lifecycle import __version__
from stellar_lifecycle.config import Settings, get_settings
from stellar_lifecycle.custodial.crossmint import CrossmintClient
from stellar_lifecycle.errors import LifecycleError
from stellar_lifecycle.fingerprint import ManagedResource, load_managed_resource
from stellar_lifecycle.lifecycle.orchestrator import LifecycleOrchestrator

logger = logging.getLogger(__name__)


async def initialize_resource(app: FastAPI) -> None:
    """Bring the managed resource up to date at startup.

    Failures are logged; the server starts regardless.
    """
    orchestrator: LifecycleOrchestrator = app.state.orchestrator
    resource: Optional[ManagedResource] = app.state.resource

    if not orchestrator.admin_configured:
        logger.info("No admin credential configured, skipping resource initialization")
        return
    if resource is None or resource.content is None:
        logger.warning("Managed resource file unavailable, skipping resource initialization")
        return

    logger.info(f"Checking resource status (hash: {resource.fingerprint.short}...)")
    try:
        report = await orchestrator.keep_resource_alive(resource.fingerprint, resource.content)
    except LifecycleError as e:
        logger.error(f"Error during resource initialization: {e}")
        return

    status = report.status
    logger.info(
        f"Resource {resource.fingerprint.short}: installed={status.installed} "
        f"expired={status.expired} ttl={status.ttl_remaining}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    if app.state.settings.init_resource_on_startup:
        await initialize_resource(app)
    yield


def _load_resource(settings: Settings) -> Optional[ManagedResource]:
    try:
        return load_managed_resource(settings.resource_path, settings.simple_account_wasm_hash)
    except (FileNotFoundError, ValueError) as e:
        logger.warning(f"Managed resource unavailable: {e}")
        return None


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[LifecycleOrchestrator] = None,
    custodial: Optional[CrossmintClient] = None,
    resource: Optional[ManagedResource] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator can be injected; missing ones are built from settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Stellar Lifecycle API",
        description="Contract code provisioning and operation confirmation",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.orchestrator = orchestrator or LifecycleOrchestrator.from_settings(settings)
    app.state.custodial = custodial or CrossmintClient(
        api_key=settings.crossmint_api_key,
        api_base=settings.crossmint_api_base,
        api_version=settings.crossmint_api_version,
    )
    app.state.resource = resource or _load_resource(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from stellar_lifecycle.api.routes import health, transfers

    app.include_router(health.router, tags=["Health"])
    app.include_router(transfers.router, prefix="/api/v1", tags=["Transfers"])

    return app
