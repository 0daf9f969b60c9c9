"""
Subscribers Module
==================

Provides:
- Public API for email subscriptions (subscribe / unsubscribe)
- Active subscriber list and stats
- Helper functions for other modules (get_all_subscriber_emails, get_subscriber_count)
"""

from flask import Blueprint

subscribers_bp = Blueprint('subscribers', __name__, url_prefix='/users')

from . import routes  # noqa: E402,F401
from .database import SubscriberDatabase, init_subscribers_db  # noqa: E402

__all__ = ['subscribers_bp', 'SubscriberDatabase', 'init_subscribers_db']
