"""Store for user accounts and file metadata records.

Every public method runs in its own session and transaction. Concurrent
writes to the same row follow last-write-wins.
"""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from prometheus_client import Counter
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .auth import hash_password, verify_password
from .config import settings
from .database import init_db, make_engine, make_session_factory
from .errors import AppError, DuplicateEmail, NotFound, ServerError, ValidationError
from .models.file import File
from .models.user import Role, User
from .relative_time import format_relative_time
from .schemas import FileCreate, FileFilters, UserCreate, UserFilters

logger = logging.getLogger(__name__)

USER_COUNTER = Counter("users_created_total", "Total user accounts created")
FILE_COUNTER = Counter("files_created_total", "Total file records created")
LOGIN_COUNTER = Counter("login_attempts_total", "Login attempts by outcome", ["outcome"])

USER_FIELDS = {"nom", "prenoms", "email", "password", "role", "actif", "derniere_connexion"}
FILE_FIELDS = {"nom", "description", "type", "taille", "chemin_fichier"}

# Accepted in update payloads but never applied.
IMMUTABLE_USER_FIELDS = {"id", "date_creation"}
IMMUTABLE_FILE_FIELDS = {"id", "date_creation", "cree_par_id"}


def _now() -> datetime:
    # Naive local time: "today" in the statistics starts at local midnight.
    return datetime.now()


def derive_storage_path(name: str, prefix: Optional[str] = None) -> str:
    """Build the simulated storage path for a file name."""
    prefix = (prefix if prefix is not None else settings.upload_path_prefix).rstrip("/")
    slug = re.sub(r"\s+", "_", name).lower()
    return f"{prefix}/{slug}"


def _contains(column, term: str):
    return func.lower(column).contains(term.lower(), autoescape=True)


class Store:
    """Single source of truth for users and files."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "Store":
        engine = make_engine(database_url)
        init_db(engine)
        return cls(make_session_factory(engine))

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as exc:
            self._handle_store_error(session, exc)
        finally:
            session.close()

    @staticmethod
    def _handle_store_error(session: Session, exc: Exception) -> None:
        """Rollback the transaction and translate database failures."""
        session.rollback()
        if isinstance(exc, AppError):
            raise exc
        if isinstance(exc, IntegrityError) and "email" in str(exc.orig).lower():
            raise DuplicateEmail() from exc
        if isinstance(exc, SQLAlchemyError):
            logger.exception("store error", exc_info=exc)
            raise ServerError("Erreur de base de données") from exc
        raise exc

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._session() as session:
            return session.query(User).filter(User.email == email).first()

    def create_user(self, data: UserCreate) -> User:
        """Persist a new account with a hashed password.

        The returned record still carries ``password_hash``; callers strip it
        before it leaves the API.
        """
        email = data.email
        with self._session() as session:
            if session.query(User.id).filter(User.email == email).first():
                raise DuplicateEmail()
            user = User(
                nom=data.nom,
                prenoms=data.prenoms,
                email=email,
                password_hash=hash_password(data.password),
                role=Role(data.role),
                actif=True,
                date_creation=_now(),
                derniere_connexion=None,
            )
            session.add(user)
            session.flush()
        USER_COUNTER.inc()
        logger.info("created user id=%s role=%s", user.id, user.role.value)
        return user

    def update_user(self, user_id: int, updates: Mapping[str, Any]) -> User:
        changes = {k: v for k, v in updates.items() if k not in IMMUTABLE_USER_FIELDS}
        unknown = set(changes) - USER_FIELDS
        if unknown:
            raise ValidationError(errors=[f"{name}: champ non modifiable" for name in sorted(unknown)])

        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("Utilisateur non trouvé")

            if "email" in changes:
                changes["email"] = str(changes["email"])
                taken = (
                    session.query(User.id)
                    .filter(User.email == changes["email"], User.id != user_id)
                    .first()
                )
                if taken:
                    raise DuplicateEmail()
            if "role" in changes:
                try:
                    changes["role"] = Role(changes["role"])
                except ValueError as exc:
                    raise ValidationError(errors=["role: doit être 'admin' ou 'user'"]) from exc
            if "password" in changes:
                changes["password_hash"] = hash_password(changes.pop("password"))

            for key, value in changes.items():
                setattr(user, key, value)
        logger.info("updated user id=%s fields=%s", user_id, sorted(changes))
        return user

    def delete_user(self, user_id: int) -> bool:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                return False
            session.delete(user)
        logger.info("deleted user id=%s", user_id)
        return True

    def list_users(self, filters: Optional[UserFilters] = None) -> Tuple[List[User], int]:
        """Return the requested page of users and the filtered total."""
        filters = filters or UserFilters()
        with self._session() as session:
            query = session.query(User)
            if filters.search:
                query = query.filter(
                    or_(
                        _contains(User.nom, filters.search),
                        _contains(User.prenoms, filters.search),
                        _contains(User.email, filters.search),
                    )
                )
            if filters.role is not None:
                query = query.filter(User.role == filters.role)
            if filters.actif is not None:
                query = query.filter(User.actif == filters.actif)

            total = query.count()
            query = query.order_by(User.date_creation.desc(), User.id.desc())
            if filters.page and filters.limit:
                query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
            return query.all(), total

    # Files

    def get_file(self, file_id: int) -> Optional[File]:
        with self._session() as session:
            return session.get(File, file_id)

    def create_file(self, data: FileCreate, creator_id: int) -> File:
        with self._session() as session:
            if session.get(User, creator_id) is None:
                raise NotFound("Utilisateur créateur introuvable")
            now = _now()
            record = File(
                nom=data.nom,
                description=data.description,
                type=data.type,
                taille=data.taille,
                chemin_fichier=data.chemin_fichier or derive_storage_path(data.nom),
                cree_par_id=creator_id,
                date_creation=now,
                date_modification=now,
                vues=0,
            )
            session.add(record)
            session.flush()
        FILE_COUNTER.inc()
        logger.info("created file id=%s by user=%s", record.id, creator_id)
        return record

    def update_file(self, file_id: int, updates: Mapping[str, Any]) -> File:
        """Merge ``updates`` into the file and always bump its modification time."""
        changes = {k: v for k, v in updates.items() if k not in IMMUTABLE_FILE_FIELDS}
        unknown = set(changes) - FILE_FIELDS
        if unknown:
            raise ValidationError(errors=[f"{name}: champ non modifiable" for name in sorted(unknown)])
        if "taille" in changes and (not isinstance(changes["taille"], int) or changes["taille"] <= 0):
            raise ValidationError(errors=["taille: la taille doit être positive"])

        with self._session() as session:
            record = session.get(File, file_id)
            if record is None:
                raise NotFound("Fichier non trouvé")
            for key, value in changes.items():
                setattr(record, key, value)
            now = _now()
            if now <= record.date_modification:
                now = record.date_modification + timedelta(microseconds=1)
            record.date_modification = now
        logger.info("updated file id=%s fields=%s", file_id, sorted(changes))
        return record

    def delete_file(self, file_id: int) -> bool:
        with self._session() as session:
            record = session.get(File, file_id)
            if record is None:
                return False
            session.delete(record)
        logger.info("deleted file id=%s", file_id)
        return True

    def list_files(self, filters: Optional[FileFilters] = None) -> Tuple[List[File], int]:
        filters = filters or FileFilters()
        with self._session() as session:
            query = session.query(File)
            if filters.search:
                query = query.filter(_contains(File.nom, filters.search))
            if filters.type:
                query = query.filter(_contains(File.type, filters.type))

            total = query.count()
            query = query.order_by(File.date_modification.desc(), File.id.desc())
            if filters.page and filters.limit:
                query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
            return query.all(), total

    def list_files_by_creator(self, user_id: int) -> List[File]:
        with self._session() as session:
            return session.query(File).filter(File.cree_par_id == user_id).order_by(File.id).all()

    def record_file_view(self, file_id: int) -> File:
        with self._session() as session:
            updated = (
                session.query(File)
                .filter(File.id == file_id)
                .update({File.vues: File.vues + 1}, synchronize_session=False)
            )
            if not updated:
                raise NotFound("Fichier non trouvé")
            return session.get(File, file_id, populate_existing=True)

    # Authentication

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the active account matching the credentials, or ``None``."""
        with self._session() as session:
            user = session.query(User).filter(User.email == email).first()
            if user is None or not user.actif or not verify_password(password, user.password_hash):
                LOGIN_COUNTER.labels(outcome="failure").inc()
                return None
            user.derniere_connexion = _now()
        LOGIN_COUNTER.labels(outcome="success").inc()
        return user

    def touch_last_login(self, user_id: int) -> None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is not None:
                user.derniere_connexion = _now()

    # Statistics

    def dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or _now()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        with self._session() as session:
            total_users = session.query(func.count(User.id)).scalar()
            total_admins = session.query(func.count(User.id)).filter(User.role == Role.ADMIN).scalar()
            total_files = session.query(func.count(File.id)).scalar()
            today_logins = (
                session.query(func.count(User.id)).filter(User.derniere_connexion >= midnight).scalar()
            )
            today_files = session.query(func.count(File.id)).filter(File.date_creation >= midnight).scalar()
        return {
            "total_users": total_users,
            "total_files": total_files,
            "total_admins": total_admins,
            "today_activity": today_logins + today_files,
        }

    def user_stats(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        with self._session() as session:
            user = session.get(User, user_id)
            files_count, views = (
                session.query(func.count(File.id), func.coalesce(func.sum(File.vues), 0))
                .filter(File.cree_par_id == user_id)
                .one()
            )
        last_login = user.derniere_connexion if user is not None else None
        return {
            "files_count": files_count,
            "views_count": int(views),
            "last_login": format_relative_time(last_login, now),
        }
