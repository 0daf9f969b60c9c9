"""
HubPress Auth Module

Provides JWT authentication for the API:
- Registration (users and admins)
- Login / logout with an HttpOnly jwt cookie
- Password reset by mailed token
- Password change for logged-in users
- protect / restrict_to decorators for other modules
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

from . import routes  # noqa: E402,F401
from .database import UserDatabase, init_users_db, serialize_user  # noqa: E402
from .utils import protect, restrict_to, sign_token  # noqa: E402

__all__ = ['auth_bp', 'UserDatabase', 'init_users_db', 'serialize_user',
           'protect', 'restrict_to', 'sign_token']
