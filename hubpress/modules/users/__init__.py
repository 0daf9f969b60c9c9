"""
Users Module
============

Admin user management and self-service profiles:
- List, search and delete users (admin)
- View a profile, edit your own profile with an image upload
"""

from flask import Blueprint

users_bp = Blueprint('users', __name__, url_prefix='/users')

from . import routes  # noqa: E402,F401

__all__ = ['users_bp']
