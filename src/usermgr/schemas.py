"""Request and response shapes for the REST API.

JSON keys are camelCase (``dateCreation``, ``cheminFichier``...) while the
Python attributes keep the snake_case column names.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import settings
from .models.user import Role


def _check_email(value: str) -> str:
    # Syntax only; the address is stored exactly as submitted.
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(str(exc)) from exc
    return value


Email = Annotated[str, AfterValidator(_check_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserCreate(CamelModel):
    """Request body for registering or creating a user."""

    nom: str = Field(..., min_length=1)
    prenoms: str = Field(..., min_length=1)
    email: Email
    password: str = Field(..., min_length=settings.password_min_length)
    role: Role


class LoginRequest(CamelModel):
    email: Email
    password: str = Field(..., min_length=1)


class UserUpdate(CamelModel):
    """Partial user update; ``id`` and ``dateCreation`` are not accepted."""

    nom: Optional[str] = Field(None, min_length=1)
    prenoms: Optional[str] = Field(None, min_length=1)
    email: Optional[Email] = None
    password: Optional[str] = Field(None, min_length=settings.password_min_length)
    role: Optional[Role] = None
    actif: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class FileCreate(CamelModel):
    nom: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: str = Field(..., min_length=1)
    taille: int = Field(..., gt=0)
    chemin_fichier: Optional[str] = None


class FileUpdate(CamelModel):
    nom: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[str] = Field(None, min_length=1)
    taille: Optional[int] = Field(None, gt=0)
    chemin_fichier: Optional[str] = None

    def changes(self) -> dict:
        # Only the description may be cleared with an explicit null.
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if value is not None or key == "description"}


class UserFilters(BaseModel):
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    search: Optional[str] = None
    role: Optional[Role] = None
    actif: Optional[bool] = None


class FileFilters(BaseModel):
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    search: Optional[str] = None
    type: Optional[str] = None


class UserRead(CamelModel):
    """Serialized user; the password hash is never part of it."""

    id: int
    nom: str
    prenoms: str
    email: str
    role: Role
    actif: bool
    date_creation: datetime
    derniere_connexion: Optional[datetime] = None


class FileRead(CamelModel):
    id: int
    nom: str
    description: Optional[str] = None
    type: str
    taille: int
    chemin_fichier: str
    cree_par_id: int
    date_creation: datetime
    date_modification: datetime
    vues: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class DashboardStats(CamelModel):
    total_users: int
    total_files: int
    total_admins: int
    today_activity: int


class UserStats(CamelModel):
    files_count: int
    views_count: int
    last_login: str


class Envelope(CamelModel):
    success: bool
    message: Optional[str] = None


class AuthResponse(Envelope):
    token: str
    user: UserRead


class UserResponse(Envelope):
    user: Optional[UserRead] = None


class UserListResponse(Envelope):
    data: List[UserRead]
    pagination: Optional[Pagination] = None


class FileResponse(Envelope):
    file: Optional[FileRead] = None


class FileListResponse(Envelope):
    data: List[FileRead]
    pagination: Optional[Pagination] = None


class DashboardStatsResponse(Envelope):
    stats: DashboardStats


class UserStatsResponse(Envelope):
    stats: UserStats
