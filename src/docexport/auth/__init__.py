"""AWS credential resolution."""

from ..core.errors import AuthError
from .credentials import assume_role, bootstrap_env_file, build_session, static_credentials

__all__ = [
    "AuthError",
    "assume_role",
    "bootstrap_env_file",
    "build_session",
    "static_credentials",
]
