"""
Application FastAPI de RedCap : import Garmin, télémétrie FIT, export GPX.

Lancement : uvicorn redcap.main:app
"""
import logging
import sys
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from redcap.core.database import create_db_and_tables
from redcap.core.settings import Settings, get_settings
from redcap.api.routers import mount_routers
from redcap.api.routers._shared import limiter

APP_VERSION = "1.0.0"

# Bibliothèques bavardes pendant une synchro Garmin
NOISY_LOGGERS = ("garth", "urllib3", "sqlalchemy.engine", "uvicorn.access")

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """JSON sur stdout en production, texte ailleurs ; fichier tournant en dev."""
    stream = logging.StreamHandler(sys.stdout)
    if settings.ENVIRONMENT == "production":
        stream.setFormatter(jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        ))
    else:
        stream.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    handlers = [stream]
    if settings.ENVIRONMENT == "development":
        handlers.append(RotatingFileHandler("redcap.log", maxBytes=5_000_000, backupCount=3))

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO), handlers=handlers)

    if settings.ENVIRONMENT == "production":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def init_sentry(settings: Settings) -> None:
    if not settings.SENTRY_DSN:
        return
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=f"redcap@{APP_VERSION}",
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    create_db_and_tables()
    Path(settings.STORAGE_DIR, settings.STORAGE_BUCKET).mkdir(parents=True, exist_ok=True)
    logger.info(
        f"RedCap API v{APP_VERSION} ({settings.ENVIRONMENT}), "
        f"stockage FIT: {settings.STORAGE_DIR}/{settings.STORAGE_BUCKET}"
    )
    yield
    logger.info("Arrêt de RedCap API")


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)
    init_sentry(settings)

    is_prod = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="RedCap API",
        description="Import Garmin, analyse des fichiers FIT et export GPX",
        version=APP_VERSION,
        docs_url=None if is_prod else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Quotas sur les routes qui appellent Garmin Connect (login, synchro)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Content-Disposition exposé pour le nom du fichier GPX téléchargé
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Disposition"],
    )

    mount_routers(app)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": APP_VERSION, "environment": settings.ENVIRONMENT}

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Erreur non gérée sur {request.url.path}: {type(exc).__name__}: {exc}", exc_info=True)
        content = {"detail": "Erreur interne du serveur"}
        if settings.DEBUG:
            content["message"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=content)

    return app


app = create_app()
