from __future__ import annotations

import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from nanoid import generate
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.deps import respond_error
from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.errors import AppError
from app.core.logging import setup_logging
from app.services.auth import AuthService
from app.services.db import db_session, init_db
from app.services.mail import MailQueue
from app.services.users import UserService

settings = get_settings()
setup_logging(settings.logging.level)

app = FastAPI(title="Garage Workshop API", version="0.1.0")

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.client_urls,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or generate(size=12)
    # read back by the 500 handler, which runs outside this middleware
    request.state.request_id = request_id
    started = time.perf_counter()
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    with logger.contextualize(request_id=request_id):
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            logger.info(
                "{method} {path} -> {status_code} in {elapsed:.1f}ms",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                elapsed=(time.perf_counter() - started) * 1000,
            )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    logger.info(
        "{method} {path} -> {status_code}: {message}",
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        message=exc.message,
    )
    return respond_error(exc.message, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return respond_error(str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on {path}: {errors}", path=request.url.path, errors=exc.errors())
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return respond_error(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    logger.bind(request_id=request_id or "-").exception(
        "Unhandled error on {method} {path}", method=request.method, path=request.url.path
    )
    response = respond_error("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def bootstrap_admin_account() -> None:
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return
    with db_session() as session:
        auth = AuthService(session=session, user_service=UserService(session=session), mailer=MailQueue())
        auth.bootstrap_admin()


@app.on_event("startup")
async def on_startup() -> None:
    init_db()
    bootstrap_admin_account()
