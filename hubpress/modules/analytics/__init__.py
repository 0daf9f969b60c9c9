"""
Analytics Module
================

Read-only pass-through to the Cloudflare GraphQL analytics API:
- GET /users/pageViews -- page views of the configured zone
"""

from flask import Blueprint

analytics_bp = Blueprint('analytics', __name__, url_prefix='/users')

from . import routes  # noqa: E402,F401
from .service import fetch_page_views  # noqa: E402

__all__ = ['analytics_bp', 'fetch_page_views']
