from contextlib import asynccontextmanager
from typing import Optional
from dotenv import load_dotenv
import logging
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.responses import Response

from hotpath_agent.api.routers.routers import api_router
from hotpath_agent.auth.grant import AccessTokenCache
from hotpath_agent.core import metrics
from hotpath_agent.core.config import Settings, settings as default_settings
from hotpath_agent.core.exceptions import IngestError
from hotpath_agent.core.logging_config import configure_logging
from hotpath_agent.middleware import RequestIDMiddleware
from hotpath_agent.msclient.client import SubmissionClient
from hotpath_agent.samples.aggregator import SampleAggregator
from hotpath_agent.samples.flush import FlushController


# Load environment variables
load_dotenv()

# Get logger for this module
logger = logging.getLogger(__name__)


def build_flush_controller(settings: Settings) -> FlushController:
    """Wire the aggregator, token cache and API client from configuration."""
    return FlushController(
        aggregator=SampleAggregator(),
        token_cache=AccessTokenCache.from_settings(settings),
        client=SubmissionClient(
            settings.API_SERVER_URL, timeout=settings.HTTP_REQUEST_TIMEOUT_SECONDS
        ),
        cache_length=settings.CACHE_LENGTH,
        test_mode=settings.TEST_MODE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage agent startup and shutdown.

    On startup, verifies the Mindsight credentials (unless in test mode); a
    CredentialError aborts startup. On shutdown, attempts a final flush of
    pending samples.
    """
    settings: Settings = app.state.settings
    controller: FlushController = app.state.flush_controller

    logger.info("Starting Mindsight agent...")

    try:
        if settings.TEST_MODE:
            logger.warning("TEST_MODE enabled: samples are logged, not sent to the API server")
        else:
            await controller.token_cache.verify()
            logger.info("Mindsight credentials verified")

        yield

    except Exception:
        logger.exception("Mindsight agent failed to start")
        raise
    finally:
        logger.info("Shutting down Mindsight agent...")
        if settings.FLUSH_ON_SHUTDOWN:
            await controller.shutdown()


def create_app(
    settings: Optional[Settings] = None,
    controller: Optional[FlushController] = None,
) -> FastAPI:
    """Create the agent application; every component is built from `settings`."""
    settings = settings or default_settings

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.is_local else None,
    )

    app.state.settings = settings
    app.state.flush_controller = controller or build_flush_controller(settings)

    # Add Request ID middleware
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(IngestError)
    async def ingest_error_handler(request: Request, exc: IngestError):
        logger.warning(f"Rejected sample batch: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        return {
            "fastAPI server": {"status": "healthy"},
            "test_mode": settings.TEST_MODE,
        }

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics():
        return Response(content=metrics.render_metrics(), media_type=CONTENT_TYPE_LATEST)

    metrics.app_info.info({
        'version': settings.VERSION,
        'test_mode': str(settings.TEST_MODE).lower(),
    })

    return app


# Configure logging using loguru
configure_logging()

# Initialize Sentry for error tracking
if default_settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=default_settings.SENTRY_DSN,
        traces_sample_rate=1.0 if default_settings.is_local else 0.1,
        environment=default_settings.ENVIRONMENT,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")

app = create_app()
