"""
FastAPI application for the Coverage Ingestion API.

Run with:
    python -m coverage_api
    uvicorn coverage_api.main:create_app --factory
"""

import asyncio
import hmac
import logging
import threading
from typing import Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from . import log
from .config import ConfigError, ServiceConfig, load_service_config, settings
from .data_access import CoverageStore, PersistenceError
from .models import CoverageRecord, CoverageReport

logger = logging.getLogger(__name__)


def _secret_matches(submitted: str, expected: str) -> bool:
    return hmac.compare_digest(
        submitted.encode("utf-8", "surrogatepass"),
        expected.encode("utf-8", "surrogatepass"),
    )


def create_app(
    service_config: Optional[ServiceConfig] = None,
    store: Optional[CoverageStore] = None,
) -> FastAPI:
    """
    Build the application.

    Loads the service secrets from the environment when no config is given;
    a missing secret raises ConfigError so the server never starts.
    """
    log.setup_logging(level=settings.LOG_LEVEL)

    if service_config is None:
        try:
            service_config = load_service_config()
        except ConfigError as e:
            log.err(str(e))
            logger.error(f"Refusing to start: {e}")
            raise

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
    )
    app.state.config = service_config
    app.state.store = store or CoverageStore(service_config)

    log.summary_table("Service configuration", [
        ("Database", service_config.turso_db_url),
        ("Auth token", log.mask(service_config.turso_auth_token)),
        ("Secret phrase", log.mask(service_config.secret_phrase, visible=0)),
        ("DB timeout", f"{settings.DB_TIMEOUT}s"),
    ])

    # Malformed JSON, missing fields and wrong types all surface as a bare 400
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected malformed body on {request.url.path}: {len(exc.errors())} error(s)")
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    # ----------------------------------------------------------------
    # Health
    # ----------------------------------------------------------------

    @app.get("/", response_class=PlainTextResponse, tags=["Health"])
    async def hello_world():
        """Liveness check."""
        return "Hello, world!"

    # ----------------------------------------------------------------
    # Coverage
    # ----------------------------------------------------------------

    @app.post("/update-coverage", status_code=status.HTTP_202_ACCEPTED, tags=["Coverage"])
    async def update_coverage(report: CoverageReport, request: Request):
        """
        Store a statement-coverage measurement.

        - **202**: row inserted
        - **400**: wrong secret phrase or malformed body
        - **500**: the database could not be reached or the insert failed
        """
        config: ServiceConfig = request.app.state.config
        if not _secret_matches(report.secret_phrase, config.secret_phrase):
            logger.warning("Rejected coverage report: secret phrase mismatch")
            return Response(status_code=status.HTTP_400_BAD_REQUEST)

        record = CoverageRecord.stamp(report)
        coverage_store: CoverageStore = request.app.state.store
        abandoned = threading.Event()
        try:
            await asyncio.wait_for(
                asyncio.get_running_loop().run_in_executor(
                    None, coverage_store.insert, record, abandoned
                ),
                timeout=settings.DB_TIMEOUT
            )
        except asyncio.TimeoutError:
            abandoned.set()
            logger.error(f"Coverage insert timed out after {settings.DB_TIMEOUT}s")
            return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except PersistenceError as e:
            logger.error(f"Error storing coverage report: {e}")
            return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.info(f"Accepted coverage report: {record.statement_percent}%")
        return Response(status_code=status.HTTP_202_ACCEPTED)

    log.ok(f"{settings.API_TITLE} ready")
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    log.header(f"{settings.API_TITLE} v{settings.API_VERSION}")
    uvicorn.run(
        create_app(),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
