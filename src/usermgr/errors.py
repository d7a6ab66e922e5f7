"""Domain errors and their mapping onto the JSON failure envelope."""

import logging
from typing import List, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Erreur serveur"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Données invalides"


class DuplicateEmail(AppError):
    status_code = 400
    default_message = "Un utilisateur avec cet email existe déjà"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Token d'accès requis"


class InvalidToken(Unauthorized):
    default_message = "Token invalide ou expiré"


class Forbidden(AppError):
    status_code = 403
    default_message = "Accès non autorisé"


class NotFound(AppError):
    status_code = 404
    default_message = "Ressource non trouvée"


class ServerError(AppError):
    status_code = 500
    default_message = "Erreur serveur"


def failure(status_code: int, message: str, errors: Optional[List[str]] = None, headers=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return failure(exc.status_code, exc.message, exc.errors)


def _describe(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {error['msg']}" if field else error["msg"]


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [_describe(e) for e in exc.errors()]
    return failure(ValidationError.status_code, ValidationError.default_message, errors)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate limit exceeded for %s: %s", request.client.host if request.client else "unknown", exc.detail)
    return failure(429, "Trop de requêtes, veuillez réessayer plus tard")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return failure(ServerError.status_code, ServerError.default_message)


def register_error_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
