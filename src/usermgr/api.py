"""FastAPI application exposing authentication, user, file and statistics endpoints."""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from slowapi import Limiter
from slowapi.util import get_remote_address

from .auth import get_current_user, get_store, issue_token, require_admin, verify_user
from .config import settings
from .errors import NotFound, Unauthorized, register_error_handlers
from .models.user import Role, User
from .schemas import (
    AuthResponse,
    DashboardStats,
    DashboardStatsResponse,
    Envelope,
    FileCreate,
    FileFilters,
    FileListResponse,
    FileRead,
    FileResponse,
    FileUpdate,
    LoginRequest,
    Pagination,
    UserCreate,
    UserFilters,
    UserListResponse,
    UserRead,
    UserResponse,
    UserStats,
    UserStatsResponse,
    UserUpdate,
)
from .seed import seed_demo_data
from .store import Store

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
router = APIRouter()

# Prometheus counter to track API requests by method, route and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

ENVELOPE = {"response_model_exclude_unset": True}


async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        REQUEST_COUNTER.labels(method=request.method, endpoint=_route_path(request), status="500").inc()
        logger.exception("error handling %s %s", request.method, request.url.path)
        raise
    REQUEST_COUNTER.labels(
        method=request.method,
        endpoint=_route_path(request),
        status=str(response.status_code),
    ).inc()
    logger.info("response %s %s status %s", request.method, request.url.path, response.status_code)
    return response


def _route_path(request: Request) -> str:
    # Label by route template so ids do not explode the metric cardinality.
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


# Public


@router.get("/")
def root() -> dict:
    return {"success": True, "message": "API de gestion des utilisateurs et des fichiers"}


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Authentication


@router.post("/api/auth/register", response_model=AuthResponse, status_code=201, **ENVELOPE)
@limiter.limit(settings.auth_rate_limit)
def register(request: Request, payload: UserCreate, store: Store = Depends(get_store)):
    user = store.create_user(payload)
    return AuthResponse(
        success=True,
        message="Compte créé avec succès",
        token=issue_token(user.id, user.email),
        user=UserRead.model_validate(user),
    )


@router.post("/api/auth/login", response_model=AuthResponse, **ENVELOPE)
@limiter.limit(settings.auth_rate_limit)
def login(request: Request, payload: LoginRequest, store: Store = Depends(get_store)):
    user = store.authenticate(payload.email, payload.password)
    if user is None:
        logger.info("rejected login for %s", payload.email)
        raise Unauthorized("Email ou mot de passe incorrect")
    return AuthResponse(
        success=True,
        message="Connexion réussie",
        token=issue_token(user.id, user.email),
        user=UserRead.model_validate(user),
    )


@router.get("/api/auth/me", response_model=UserResponse, **ENVELOPE)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse(success=True, user=UserRead.model_validate(current_user))


# Users


@router.get("/api/users", response_model=UserListResponse, dependencies=[Depends(require_admin)], **ENVELOPE)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[Role] = None,
    actif: Optional[bool] = None,
    store: Store = Depends(get_store),
):
    """Return a filtered page of users (administrators only)."""
    users, total = store.list_users(
        UserFilters(page=page, limit=limit, search=search, role=role, actif=actif)
    )
    return UserListResponse(
        success=True,
        data=[UserRead.model_validate(u) for u in users],
        pagination=_pagination(page, limit, total),
    )


@router.post(
    "/api/users",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
    **ENVELOPE,
)
def create_user(payload: UserCreate, store: Store = Depends(get_store)):
    user = store.create_user(payload)
    return UserResponse(success=True, message="Utilisateur créé avec succès", user=UserRead.model_validate(user))


@router.get("/api/users/{user_id}", response_model=UserResponse, dependencies=[Depends(verify_user)], **ENVELOPE)
def get_user(user_id: int, store: Store = Depends(get_store)):
    user = store.get_user(user_id)
    if user is None:
        raise NotFound("Utilisateur non trouvé")
    return UserResponse(success=True, user=UserRead.model_validate(user))


@router.put("/api/users/{user_id}", response_model=UserResponse, **ENVELOPE)
def update_user(
    user_id: int,
    payload: UserUpdate,
    current_user: User = Depends(verify_user),
    store: Store = Depends(get_store),
):
    """Update a profile; only administrators may change a role."""
    changes = payload.changes()
    if not current_user.is_admin:
        changes.pop("role", None)
    user = store.update_user(user_id, changes)
    return UserResponse(success=True, message="Utilisateur modifié avec succès", user=UserRead.model_validate(user))


@router.delete("/api/users/{user_id}", response_model=Envelope, dependencies=[Depends(verify_user)], **ENVELOPE)
def delete_user(user_id: int, store: Store = Depends(get_store)):
    if not store.delete_user(user_id):
        raise NotFound("Utilisateur non trouvé")
    return Envelope(success=True, message="Utilisateur supprimé avec succès")


@router.get(
    "/api/users/{user_id}/files",
    response_model=FileListResponse,
    dependencies=[Depends(verify_user)],
    **ENVELOPE,
)
def get_user_files(user_id: int, store: Store = Depends(get_store)):
    """Return every file created by the user."""
    if store.get_user(user_id) is None:
        raise NotFound("Utilisateur non trouvé")
    files = store.list_files_by_creator(user_id)
    return FileListResponse(success=True, data=[FileRead.model_validate(f) for f in files])


# Files


@router.get("/api/files", response_model=FileListResponse, dependencies=[Depends(get_current_user)], **ENVELOPE)
def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    type: Optional[str] = None,
    store: Store = Depends(get_store),
):
    files, total = store.list_files(FileFilters(page=page, limit=limit, search=search, type=type))
    return FileListResponse(
        success=True,
        data=[FileRead.model_validate(f) for f in files],
        pagination=_pagination(page, limit, total),
    )


@router.get("/api/files/{file_id}", response_model=FileResponse, dependencies=[Depends(get_current_user)], **ENVELOPE)
def get_file(file_id: int, store: Store = Depends(get_store)):
    """Return a file and count the read as a view."""
    record = store.record_file_view(file_id)
    return FileResponse(success=True, file=FileRead.model_validate(record))


@router.post("/api/files", response_model=FileResponse, status_code=201, **ENVELOPE)
def create_file(
    payload: FileCreate,
    current_user: User = Depends(require_admin),
    store: Store = Depends(get_store),
):
    record = store.create_file(payload, creator_id=current_user.id)
    return FileResponse(success=True, message="Fichier ajouté avec succès", file=FileRead.model_validate(record))


@router.put("/api/files/{file_id}", response_model=FileResponse, dependencies=[Depends(require_admin)], **ENVELOPE)
def update_file(file_id: int, payload: FileUpdate, store: Store = Depends(get_store)):
    record = store.update_file(file_id, payload.changes())
    return FileResponse(success=True, message="Fichier modifié avec succès", file=FileRead.model_validate(record))


@router.delete("/api/files/{file_id}", response_model=Envelope, dependencies=[Depends(require_admin)], **ENVELOPE)
def delete_file(file_id: int, store: Store = Depends(get_store)):
    if not store.delete_file(file_id):
        raise NotFound("Fichier non trouvé")
    return Envelope(success=True, message="Fichier supprimé avec succès")


# Statistics


@router.get(
    "/api/stats/dashboard",
    response_model=DashboardStatsResponse,
    dependencies=[Depends(require_admin)],
    **ENVELOPE,
)
def dashboard_stats(store: Store = Depends(get_store)):
    return DashboardStatsResponse(success=True, stats=DashboardStats(**store.dashboard_stats()))


@router.get("/api/stats/user", response_model=UserStatsResponse, **ENVELOPE)
def user_stats(current_user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    return UserStatsResponse(success=True, stats=UserStats(**store.user_stats(current_user.id)))


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the application around ``store``, or one opened from settings."""
    logging.getLogger("usermgr").setLevel(settings.log_level)
    app = FastAPI(title=settings.api_title)
    app.state.limiter = limiter
    app.state.store = store or Store.from_url(settings.database_url)

    register_error_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.include_router(router)

    if settings.seed_demo_data:
        seed_demo_data(app.state.store)
    return app


app = create_app()
