"""
Blog Module
===========

Blog posts with S3/local cover images:
- Create, update and delete posts (author or admin)
- Public listing, lookup by id/slug/category, search, latest and editor's pick
"""

from flask import Blueprint

blog_bp = Blueprint('blog', __name__, url_prefix='/blog')

from . import routes  # noqa: E402,F401
from .database import BlogDatabase, init_blog_db, serialize_blog  # noqa: E402

__all__ = ['blog_bp', 'BlogDatabase', 'init_blog_db', 'serialize_blog']
