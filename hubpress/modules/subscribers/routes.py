"""
Subscribers Routes
==================

Provides:
- POST /users/subscribe            -- subscribe an email (welcome email on first signup)
- PATCH /users/unsubscribe         -- deactivate a subscription
- GET /users/subscribers           -- active subscriber emails
- GET /users/subscribers/stats     -- subscriber count
"""

import logging
import sqlite3
from datetime import datetime, timezone
from flask import jsonify, request
from . import subscribers_bp
from .database import SubscriberDatabase
from ..auth.routes import get_payload
from ..email import email_service, is_valid_email
from ...core.errors import ApiError
from ...core.logging_service import LoggingService
from ...core.security import get_client_ip

logger = logging.getLogger(__name__)


def _submitted_email():
    return (get_payload().get('email') or '').strip().lower()


@subscribers_bp.route('/subscribe', methods=['POST'])
def subscribe():
    """Handle new subscription requests"""
    email = _submitted_email()
    if not is_valid_email(email):
        raise ApiError(400, 'Please enter a valid email address')

    ip_address = get_client_ip()
    user_agent = request.headers.get('User-Agent', '')[:500]

    try:
        existing = SubscriberDatabase.get_by_email(email)
        if existing and existing['active']:
            logger.info(f"Email {email} has already subscribed")
            raise ApiError(401, 'Email has already subscribed..')

        if existing:
            SubscriberDatabase.set_active(email, True, ip_address, user_agent)
            logger.info(f"Reactivated subscription for: {email}")
        else:
            SubscriberDatabase.add(email, ip_address, user_agent)
            logger.info(f"New subscription: {email}")
    except sqlite3.Error as e:
        logger.error(f"Error subscribing {email}: {e}")
        raise ApiError(500, 'internal server error')

    if not existing and not email_service.send_welcome_email(email):
        logger.warning(f"Welcome email to {email} could not be sent")

    LoggingService.info('subscribers', f"Subscribed {email}", {'reactivated': bool(existing)})
    return jsonify({'message': 'Subscription successful'}), 200


@subscribers_bp.route('/unsubscribe', methods=['PATCH', 'POST'])
def unsubscribe():
    """Deactivate a subscription"""
    email = _submitted_email()
    if not email:
        raise ApiError(400, 'Email address is required')

    try:
        if not SubscriberDatabase.get_by_email(email):
            return jsonify({'message': 'Email not found'}), 404
        SubscriberDatabase.set_active(email, False)
    except sqlite3.Error as e:
        logger.error(f"Error unsubscribing {email}: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f"Unsubscribed: {email}")
    LoggingService.info('subscribers', f"Unsubscribed {email}")
    return jsonify({'message': 'Unsubscribed successfully'}), 200


@subscribers_bp.route('/subscribers', methods=['GET'])
def list_subscribers():
    try:
        return jsonify(SubscriberDatabase.get_all_subscriber_emails())
    except sqlite3.Error as e:
        logger.error(f"Error listing subscribers: {e}")
        raise ApiError(500, 'internal server error')


@subscribers_bp.route('/subscribers/stats', methods=['GET'])
def subscriber_stats():
    """Get subscriber statistics"""
    try:
        count = SubscriberDatabase.get_subscriber_count()
    except sqlite3.Error as e:
        logger.error(f"Error getting subscriber stats: {e}")
        raise ApiError(500, 'internal server error')

    return jsonify({
        'count': count,
        'last_updated': datetime.now(timezone.utc).isoformat(),
    })
