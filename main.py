import logging
import time
import uuid

from dotenv import load_dotenv

load_dotenv(override=False)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from starlette.middleware.base import BaseHTTPMiddleware

from config import APP_NAME, APP_VERSION, DB_RETRY_AFTER_SECONDS, ENVIRONMENT, LOG_LEVEL, TESTING
from core.db import create_tables, is_lock_contention
from core.errors import RewardsError, TransientError
from core.logging import configure_logging, request_id_var
from routers.auth import api as auth_api
from routers.giveaways import api as giveaways_api
from routers.rewards import api as rewards_api
from routers.wallet import api as wallet_api
from routers.withdrawals import api as withdrawals_api

log_level = configure_logging(environment=ENVIRONMENT, log_level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=APP_NAME,
    description="Ledger and reward-issuance backend: coins, tokens, payouts, referrals and giveaways",
    version=APP_VERSION,
    swagger_ui_parameters={
        "docExpansion": "none",
        "displayRequestDuration": True,
        "filter": True,
        "persistAuthorization": False,
    },
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=APP_NAME,
        version=APP_VERSION,
        description="""
        ## Authentication
        Sign in with an emailed one-time code (`/auth/otp/request`, then `/auth/otp/verify`).
        Every other endpoint except `/` and `/health` needs the returned session token.

        Format: `Authorization: Bearer <session_token>`

        Admin endpoints take `X-Admin-Key` instead.
        """,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    openapi_schema["security"] = [{"bearerAuth": []}]
    app.openapi_schema = openapi_schema
    return openapi_schema


app.openapi = custom_openapi


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        token = request_id_var.set(request_id)
        request.state.request_id = request_id
        start_time = time.time()

        query_str = f"?{request.url.query}" if request.query_params else ""
        logger.info(
            f"REQUEST | id={request_id} | method={request.method} | path={request.url.path}{query_str} | "
            f"ip={request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            account_id = getattr(request.state, "account_id", None)
            logger.info(
                f"RESPONSE | id={request_id} | method={request.method} | path={request.url.path} | "
                f"status={response.status_code} | time={process_time:.3f}s | account_id={account_id or 'anonymous'}"
            )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"ERROR | id={request_id} | method={request.method} | path={request.url.path} | "
                f"error={type(e).__name__}: {str(e)} | time={process_time:.3f}s",
                exc_info=True,
            )
            raise
        finally:
            request_id_var.reset(token)


app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "Authorization", "Content-Type", "Accept", "Origin", "X-Admin-Key"],
)


def _error_response(status_code: int, error: dict, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": error["message"], "error": error},
        headers=headers,
    )


@app.exception_handler(RewardsError)
async def rewards_error_handler(request: Request, exc: RewardsError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    headers = None
    if isinstance(exc, TransientError):
        headers = {"Retry-After": str(exc.retry_after)}
    return _error_response(exc.status_code, exc.to_dict(), headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request.")
    return _error_response(
        422,
        {
            "kind": "validation_error",
            "message": message,
            "fields": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
        },
    )


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    # Lock waits that time out outside `atomic` (e.g. a dependency's first read)
    if is_lock_contention(exc):
        logger.warning(f"Lock contention on {request.method} {request.url.path}: {exc.orig}")
        return await rewards_error_handler(request, TransientError(retry_after=DB_RETRY_AFTER_SECONDS))
    return await unhandled_error_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(500, {"kind": "internal_error", "message": RewardsError.default_message})


app.include_router(auth_api.router)
app.include_router(wallet_api.router)
app.include_router(rewards_api.router)
app.include_router(withdrawals_api.router)
app.include_router(giveaways_api.router)


@app.on_event("startup")
async def startup_event():
    if not TESTING:
        create_tables()
    logger.info(f"{APP_NAME} {APP_VERSION} started ({ENVIRONMENT})")


@app.get("/")
async def read_root():
    """Root endpoint to check if the server is running."""
    return {
        "status": "online",
        "message": f"Welcome to {APP_NAME}!",
        "version": APP_VERSION,
        "environment": ENVIRONMENT,
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
