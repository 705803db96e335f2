from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from paygate import models  # noqa: F401  registers tables on Base
from paygate.config import Settings, settings as default_settings
from paygate.database import Base, create_session_factory
from paygate.errors import PaymentGatewayError, UpstreamError
from paygate.observability import configure_logging, current_request_id, install_request_id_middleware
from paygate.razorpay_service import RazorpayGateway
from paygate.routes import router

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, message: str, reference: str | None = None):
    content = {"success": False, "message": message}
    if reference:
        content["reference"] = reference
    return JSONResponse(status_code=status_code, content=content)


def install_exception_handlers(app: FastAPI):
    @app.exception_handler(PaymentGatewayError)
    async def handle_gateway_error(request: Request, exc: PaymentGatewayError):
        if isinstance(exc, UpstreamError):
            # raw upstream text stays in the log, the client gets the correlation id
            reference = current_request_id()
            logger.error("upstream_error", error=exc.message, reference=reference)
            return _error_response(exc.status_code, exc.public_message, reference)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError):
        reference = current_request_id()
        logger.error("store_error", error=str(exc), reference=reference)
        return _error_response(500, UpstreamError.public_message, reference)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info("invalid_request_body", errors=exc.errors())
        return _error_response(400, "Invalid request body")


def create_app(settings: Settings = None, session_factory=None, gateway: RazorpayGateway = None) -> FastAPI:
    """Build the API with its order store and Razorpay client.

    Both collaborators are created once here unless supplied, and reach the
    handlers through ``app.state``.
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    owns_store = session_factory is None
    session_factory = session_factory or create_session_factory(settings.DATABASE_URL)
    gateway = gateway or RazorpayGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        api_url=settings.RAZORPAY_API_URL,
        timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_store:
            Base.metadata.create_all(bind=session_factory.kw["bind"])
        logger.info("startup", port=settings.PORT, razorpay_configured=bool(settings.RAZORPAY_KEY_ID))
        yield

    app = FastAPI(title="Razorpay Payment Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    install_request_id_middleware(app)
    install_exception_handlers(app)
    app.include_router(router)
    return app


def run():
    uvicorn.run("paygate.main:create_app", factory=True, host=default_settings.HOST, port=default_settings.PORT)
