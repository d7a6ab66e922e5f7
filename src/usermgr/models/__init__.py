from .file import File
from .user import Role, User

__all__ = ["File", "Role", "User"]
