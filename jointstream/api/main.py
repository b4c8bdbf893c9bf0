"""
Joint Stream - HTTP/WebSocket API

FastAPI application that provides:
- Live joint angle stream over WebSocket
- Health probe and runtime status
- On-demand read and explicit reconnect for diagnostics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..common.config import AppConfig, load_config
from ..common.exceptions import DeviceError
from ..common.logging_setup import get_service_logger
from ..device.link_manager import TransportFactory
from ..device.modbus_client import ModbusClient
from .dependencies import build_runtime
from .routers import health, readings, stream

logger = get_service_logger("api")


def create_app(
    config: AppConfig | None = None,
    transport_factory: TransportFactory = ModbusClient,
) -> FastAPI:
    """
    Build the application for a configuration.

    Args:
        config: Resolved configuration (loaded from file/env if None)
        transport_factory: Creates the Modbus transport for the link manager
    """
    config = config or load_config()
    runtime = build_runtime(config, transport_factory)

    # ============================================
    # APPLICATION LIFESPAN
    # ============================================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: connect to the PLC (failure is logged, not fatal).
        Shutdown: stop all subscribers, then close the Modbus session.
        """
        logger.info(f"Connecting to PLC at {config.device.address} (unit {config.device.unit_id})")
        try:
            await runtime.link.connect()
            logger.info("PLC connected, serving live data")
        except DeviceError as e:
            logger.warning(f"PLC connection failed, live data unavailable: {e.message}")

        yield

        logger.info("Shutting down")
        await runtime.registry.close_all()
        await runtime.link.close()

    # ============================================
    # CREATE APPLICATION
    # ============================================

    app = FastAPI(
        title="Joint Stream",
        description="Robot joint angles read from a PLC over Modbus TCP.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(readings.router, tags=["Readings"])
    app.include_router(stream.router, tags=["Stream"])

    return app
