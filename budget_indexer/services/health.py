"""
Health check server.

Exposes sync engine status over HTTP for liveness and readiness checks.
"""

import asyncio

from aiohttp import web
from loguru import logger

from budget_indexer.services.sync_engine import EngineState, SyncEngine

ENGINE_KEY = web.AppKey("engine", SyncEngine)


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with engine status, 503 unless the loop is running
    """
    engine = request.app[ENGINE_KEY]
    status = engine.status()
    healthy = engine.state == EngineState.RUNNING
    return web.json_response(
        {"status": "healthy" if healthy else "unhealthy", **status},
        status=200 if healthy else 503,
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """Readiness: the engine finished initializing and is syncing."""
    engine = request.app[ENGINE_KEY]
    if engine.state != EngineState.RUNNING:
        return web.json_response(
            {"status": "not_ready", "ready": False, "state": str(engine.state)},
            status=503,
        )
    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness: the process answers HTTP."""
    return web.json_response({"status": "alive", "alive": True})


async def status_handler(request: web.Request) -> web.Response:
    """Full engine status, always 200."""
    return web.json_response(request.app[ENGINE_KEY].status())


def create_health_app(engine: SyncEngine) -> web.Application:
    """Build the health application for an engine."""
    app = web.Application()
    app[ENGINE_KEY] = engine
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    app.router.add_get("/status", status_handler)
    return app


async def start_health_server(
    engine: SyncEngine,
    host: str = "0.0.0.0",
    port: int = 8030,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        engine: Engine to report on
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app(engine))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
