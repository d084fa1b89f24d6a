"""
Application factory.

Builds the FastAPI application hosting the deployment webhooks with the
engine wired from settings.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from iacflow.deployment.manager import DeployService, build_deploy_service
from iacflow.deployment.router import router as deployment_router
from iacflow.logging import get_logger, setup_logging
from iacflow.settings import Settings, get_settings

logger = get_logger(__name__)


async def _housekeeping_loop(service: DeployService, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            service.run_housekeeping()
        except Exception as e:
            logger.error("service.housekeeping.failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle events."""
    settings: Settings = app.state.settings
    service: DeployService = app.state.deploy_service
    interval = settings.deployment.housekeeping_interval_seconds

    housekeeping = None
    if interval:
        housekeeping = asyncio.create_task(_housekeeping_loop(service, interval))
    logger.info(
        "service.startup.complete",
        kinds=[k.value for k in service.kind_manager.kinds],
        housekeeping_interval=interval,
    )

    yield

    logger.info("service.shutdown.begin")
    if housekeeping is not None:
        housekeeping.cancel()
        with suppress(asyncio.CancelledError):
            await housekeeping
    await service.close()
    logger.info("service.shutdown.complete")


def create_app(
    settings: Settings | None = None,
    deploy_service: DeployService | None = None,
) -> FastAPI:
    """Create the application; pass a prebuilt service to share it with callers."""
    settings = settings or get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.deploy_service = deploy_service or build_deploy_service(settings)
    app.include_router(deployment_router, prefix=settings.deployment.api_prefix)

    logger.info(
        "app.created",
        environment=settings.environment.value,
        executor=settings.deployment.executor.value,
    )
    return app
