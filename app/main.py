"""
Coin Flip Main Application Entry Point
FastAPI service exposing the verifiable-randomness coin flip wager.
"""

import os
import sys
import asyncio
from pathlib import Path

# Add parent directory to path so imports work when running directly
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import uvicorn
import orjson as json

from app.config import AppConfig, settings
from app.core.deployment import deploy
from app.core.exceptions import WagerError
from app.core.logger import init_logging, get_logger
from app.core.scheduler import FulfillmentScheduler
from app.core.vrf import GatewayError
from app.core.websocket import ConnectionManager
from app.routers import admin, api, vrf
from app.routers.api import limiter

# Initialize logging first
init_logging(
    level=settings.logging.level,
    log_to_file=settings.logging.log_to_file,
    formatter=settings.logging.formatter,
    log_file_path=settings.paths.get_log_path(),
)
logger = get_logger("main")
ws_logger = get_logger("websocket")


# ==================== Exception Handlers ====================


async def wager_error_handler(request: Request, exc: WagerError):
    logger.warning(
        f"Rejected {request.method} {request.url.path}: {exc.message}",
        extra={"error": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def gateway_error_handler(request: Request, exc: GatewayError):
    if exc.status_code >= 500:
        logger.error(f"Randomness coordinator failure: {exc}", extra={"error": type(exc).__name__})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Randomness coordinator failure", "detail": str(exc)},
        )
    logger.warning(f"Rejected coordinator call: {exc}", extra={"error": type(exc).__name__})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Invalid coordinator request", "detail": str(exc)},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions gracefully."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    debug = request.app.state.config.server.debug
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if debug else None,
        },
    )


# ==================== Application Setup ====================


def create_app(config: AppConfig = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or settings

    app = FastAPI(
        title=config.server.name,
        docs_url="/docs" if config.server.debug else None,
        redoc_url=None,
    )

    deployment = deploy(config)
    ws_manager = ConnectionManager()
    deployment.wager.subscribe(lambda event: ws_manager.publish(event.to_dict()))

    app.state.config = config
    app.state.deployment = deployment
    app.state.ws_manager = ws_manager
    app.state.scheduler = None

    # slowapi rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(WagerError, wager_error_handler)
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(api.router, prefix="/api")
    app.include_router(admin.router, prefix="/admin")
    app.include_router(vrf.router, prefix="/vrf")

    @app.on_event("startup")
    async def startup_event():
        ws_manager.bind_loop(asyncio.get_running_loop())
        if config.vrf.auto_fulfill:
            app.state.scheduler = FulfillmentScheduler(
                deployment.coordinator, config.vrf.fulfill_interval_seconds
            )
            app.state.scheduler.start()

    @app.on_event("shutdown")
    def shutdown_event():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown()

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "pool_balance": deployment.wager.pool_balance,
            "pending_requests": len(deployment.coordinator.pending_request_ids()),
            "websocket_clients": ws_manager.get_connection_count(),
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint streaming wager events.
        Supports:
        - CoinFlipped / CoinLanded notifications
        - Keep-alive ping
        """
        address = websocket.query_params.get("address")
        client_ip = websocket.client.host if websocket.client else None

        await ws_manager.connect(websocket)
        ws_logger.info("WebSocket connected", extra={"address": address, "client_ip": client_ip})

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    continue

                if message.get("type") == "ping":
                    await websocket.send_bytes(json.dumps({"type": "pong"}))

        except WebSocketDisconnect as e:
            ws_manager.disconnect(websocket)
            ws_logger.info(
                "WebSocket disconnected",
                extra={"address": address, "client_ip": client_ip, "ws_disconnect_code": e.code},
            )
        except Exception as e:
            ws_manager.disconnect(websocket)
            ws_logger.error(
                "WebSocket error",
                extra={"address": address, "client_ip": client_ip, "error": str(e)},
            )

    logger.info(f"Application '{config.server.name}' initialized")
    logger.info(f"Owner: {deployment.wager.get_owner()}")
    return app


app = create_app()


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Coin Flip Server")
    parser.add_argument(
        "--auto-fulfill",
        action="store_true",
        help="Deliver randomness for pending flips in the background",
    )
    args = parser.parse_args()

    if args.auto_fulfill:
        # With reload on, uvicorn re-imports the app in a fresh process
        settings.vrf.auto_fulfill = True
        os.environ["VRF_AUTO_FULFILL"] = "true"
        logger.info("*** AUTO FULFILMENT ENABLED ***")

    logger.info(f"Starting server on {settings.server.host}:{settings.server.port}")
    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.debug,
    )
