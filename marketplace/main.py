import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from . import config
from . import models  # noqa: F401 - registers tables on Base
from .auth import Authenticator, JWTAuthenticator
from .cache import Cache
from .database import Base, build_session_factory, create_db_engine
from .domain.agents.router import router as agent_router
from .domain.bookings.router import router as client_bookings_router
from .domain.providers.router import router as provider_router
from .domain.reviews.router import router as reviews_router
from .domain.search.router import router as public_router
from .email_service import ResendEmailSender
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    MarketplaceError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .services.embedding_service import EmbeddingProvider, HuggingFaceEmbeddingProvider
from .services.notification_service import NotificationSender

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

# Domain error → HTTP status; checked in order, so subclasses come first
ERROR_STATUS_CODES: list[tuple[type[MarketplaceError], int]] = [
    (NotFoundError, 404),
    (UnauthorizedError, 401),
    (ForbiddenError, 403),
    (InvalidTransitionError, 400),
    (InvalidStateError, 400),
    (ValidationError, 400),
    (ConflictError, 409),
]


def status_code_for(exc: MarketplaceError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(
    database_url: Optional[str] = None,
    engine: Optional[Engine] = None,
    notification_sender: Optional[NotificationSender] = None,
    embedding_provider: Optional[EmbeddingProvider] = None,
    authenticator: Optional[Authenticator] = None,
    cache: Optional[Cache] = None,
) -> FastAPI:
    """
    Composition root: every collaborator is built here and stored on app.state.

    Anything passed in replaces the production default, which is how tests
    swap in an in-memory database and fake senders.
    """
    engine = engine or create_db_engine(database_url or config.DATABASE_URL)
    sender = notification_sender or ResendEmailSender(config.RESEND_API_KEY, config.EMAIL_FROM_ADDRESS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        try:
            Base.metadata.create_all(bind=engine, checkfirst=True)
            logger.info("Database tables created successfully")
        except Exception as e:
            # Another worker may have created them first
            error_msg = str(e)
            if "already exists" in error_msg or "duplicate key" in error_msg:
                logger.info("Database tables already exist (created by another worker)")
            else:
                logger.error(f"Failed to create database tables: {e}")
                raise

        yield
        logger.info("Application shutting down...")

    app = FastAPI(title="Marketplace API", version="1.0.0", lifespan=lifespan)

    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.notification_sender = sender
    app.state.embedder = embedding_provider or HuggingFaceEmbeddingProvider(
        config.EMBEDDING_API_URL, config.HF_TOKEN, config.EMBEDDING_TIMEOUT_SECONDS
    )
    app.state.authenticator = authenticator or JWTAuthenticator(config.SECRET_KEY, config.JWT_ALGORITHM)
    app.state.cache = cache or Cache(redis_url=config.REDIS_URL)

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        status_code = status_code_for(exc)
        content = {"detail": exc.message}
        if isinstance(exc, InvalidTransitionError):
            content["from"] = exc.from_status
            content["to"] = exc.to_status
        if status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} - {type(exc).__name__}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} → {status_code}: {exc.message}")
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies and parameters are client errors (400)"""
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
            raise
        duration_ms = (time.time() - start) * 1000
        logger.debug(f"{request.method} {request.url.path} {response.status_code} ({duration_ms:.1f}ms)")
        return response

    logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(client_bookings_router)
    app.include_router(agent_router)
    app.include_router(provider_router)
    app.include_router(reviews_router)
    app.include_router(public_router)

    @app.get("/")
    def root():
        return {"message": "Marketplace API is running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Pydantic error dicts may carry exception objects in ``ctx``; keep the printable parts"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
