import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger("wallet.api")


class WalletError(Exception):
    """Base of the errors a handler translates into an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WalletError):
    status_code = 400
    default_message = "Invalid request data"


class NotFound(WalletError):
    status_code = 404
    default_message = "Not found"


class InsufficientBalance(WalletError):
    status_code = 400
    default_message = "Insufficient balance"


class InvalidSignature(WalletError):
    status_code = 401
    default_message = "Invalid Telegram data"


class UpstreamError(WalletError):
    status_code = 502
    default_message = "Upstream provider error"


async def wallet_error_handler(request: Request, exc: WalletError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(WalletError, wallet_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
