"""FastAPI application factory for receiptable."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from receiptable.api import routes as api_routes
from receiptable.config import AppConfig, load_config, load_templates, resolve_path, settings
from receiptable.orchestrator import PrintOrchestrator
from receiptable.templates.encoder import EscPosEncoder
from receiptable.transports import TransportError

logger = logging.getLogger(__name__)


async def _startup(config: AppConfig) -> PrintOrchestrator:
    orchestrator = PrintOrchestrator(
        encoder=EscPosEncoder(cut=config.cut_paper, feed_lines=config.feed_lines),
        printer_config=config.printer,
    )

    # Load templates
    templates_path = resolve_path(config.templates_dir, settings.config_file)
    logger.info(f"Loading templates from {templates_path}")
    template_result = load_templates(templates_path)
    for template in template_result.templates.values():
        orchestrator.store.put(template)
    logger.info(f"Loaded {len(template_result.templates)} templates")

    # Restore the saved printer connection
    if config.printer is not None:
        try:
            await orchestrator.connect(config.printer.connection_type, config.printer.device_path)
        except (TransportError, ValueError) as e:
            logger.error(f"Failed to connect to saved printer {config.printer.device_path}: {e}")

    return orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Loading configuration from {settings.config_file}")
    config = getattr(app.state, "config", None) or load_config(settings.config_file)
    app.state.config = config
    app.state.orchestrator = await _startup(config)

    logger.info("receiptable startup complete")

    yield

    logger.info("receiptable shutting down")
    try:
        await app.state.orchestrator.close()
    except TransportError as e:
        logger.error(f"Error disconnecting printer: {e}")

    logger.info("receiptable shutdown complete")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Configuration to use instead of loading settings.config_file.
    """
    app = FastAPI(
        title="receiptable",
        description="Receipt template rendering and thermal printer bridge",
        version="0.1.0",
        lifespan=lifespan,
    )
    if config is not None:
        app.state.config = config

    origins = (config or load_config(settings.config_file)).cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        api_routes.router,
        dependencies=[Depends(api_routes.verify_api_key)],
    )

    return app


# Default app instance for uvicorn
app = create_app()
