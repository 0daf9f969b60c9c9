"""
Auth Routes
===========

- POST /auth/register            -- user sign-up
- POST /auth/admin/register      -- admin sign-up
- POST /auth/login               -- email/password login
- POST|GET /auth/logout          -- expire the jwt cookie
- GET /auth/me                   -- current user
- POST /auth/forgotpassword      -- mail a reset token
- POST|PATCH /auth/resetpassword -- set a new password with a reset token
- PATCH /auth/updatepassword     -- change password while logged in
"""

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from flask import g, jsonify, make_response, request
from jose import JWTError
from . import auth_bp
from .database import UserDatabase, serialize_user
from .utils import (
    clear_auth_cookie, create_password_reset_token, decode_token, get_request_token,
    hash_reset_token, protect, set_auth_cookie, sign_token, validate_password_strength,
)
from ..email import email_service
from ...core.config import get_config_value
from ...core.errors import ApiError
from ...core.logging_service import LoggingService

logger = logging.getLogger(__name__)


def get_payload():
    """JSON body, falling back to form fields"""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _display_name(user):
    return (user.get('username') or user.get('email') or '').upper()


def _register(data, role):
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if role == 'admin':
        username = (data.get('username') or '').strip()
        if not all([username, email, password]):
            raise ApiError(400, 'Username, email and password are required.')
        first_name = last_name = None
    else:
        first_name = (data.get('firstName') or '').strip()
        last_name = (data.get('lastName') or '').strip()
        username = (data.get('username') or '').strip() or None
        if not all([first_name, last_name, email, password]):
            raise ApiError(400, 'First name, last name, email and password are required.')

    if not validate_password_strength(password):
        raise ApiError(400, 'Password must be at least 8 characters long.')

    if UserDatabase.get_user_by_email(email):
        raise ApiError(401, 'Email already taken. Use a different one.')

    user = UserDatabase.create_user(
        email, password, first_name=first_name, last_name=last_name,
        username=username, role=role
    )
    if not user:
        raise ApiError(401, 'Email already taken. Use a different one.')

    access_token = sign_token(user['id'])
    response = make_response(jsonify({
        'status': 'success',
        'message': 'User registered successfully.',
        'User': serialize_user(user),
        'access_token': access_token,
    }), 201)
    set_auth_cookie(response, access_token)

    label = 'Admin' if role == 'admin' else 'User'
    LoggingService.log_user_action('auth', 'register', user['id'], {'role': role})
    logger.info(f"{label} {_display_name(user)} registered successfully.")
    return response


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a regular user"""
    try:
        return _register(get_payload(), 'user')
    except sqlite3.Error as e:
        logger.error(f"Register error: {e}")
        raise ApiError(500, 'internal server error')


@auth_bp.route('/admin/register', methods=['POST'])
def admin_register():
    """Register an admin user"""
    try:
        return _register(get_payload(), 'admin')
    except sqlite3.Error as e:
        logger.error(f"Admin register error: {e}")
        raise ApiError(500, 'internal server error')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Email/password login"""
    data = get_payload()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise ApiError(400, 'Please provide email and password.')

    try:
        user = UserDatabase.get_user_by_email(email)
        if not user:
            LoggingService.log_security_event('Login for unknown email', {'email': email})
            raise ApiError(401, 'User doesnt exist........')

        if not UserDatabase.check_password(user, password):
            LoggingService.log_security_event('Failed login', {'email': email, 'user_id': user['id']})
            raise ApiError(401, 'Invalid credentials. Check them and try again.')

        access_token = sign_token(user['id'])
        UserDatabase.set_authenticated(user['id'], True)
        user = UserDatabase.get_user_by_id(user['id'])
    except sqlite3.Error as e:
        logger.error(f"Login error: {e}")
        raise ApiError(500, 'internal server error')

    response = make_response(jsonify({
        'status': 'success',
        'message': f"Logged in as {_display_name(user)}",
        'user': serialize_user(user),
        'access_token': access_token,
    }), 200)
    set_auth_cookie(response, access_token)

    LoggingService.log_user_action('auth', 'login', user['id'])
    return response


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """Expire the auth cookie and mark the user as signed out"""
    token = get_request_token()
    if token:
        try:
            user_id = decode_token(token).get('id')
            UserDatabase.set_authenticated(user_id, False)
        except JWTError:
            pass  # Logging out with a stale token is fine
        except sqlite3.Error as e:
            logger.error(f"Logout error: {e}")

    response = make_response(jsonify({
        'status': 'success',
        'message': 'Logged out successfully.',
    }), 200)
    return clear_auth_cookie(response)


@auth_bp.route('/me', methods=['GET'])
@protect
def me():
    return jsonify({'status': 'success', 'user': serialize_user(g.user)})


@auth_bp.route('/forgotpassword', methods=['POST'])
def forgot_password():
    """Generate a reset token and mail it to the account owner"""
    email = (get_payload().get('email') or '').strip().lower()
    if not email:
        raise ApiError(400, 'Please provide your email address.')

    logger.info(f"Forgot password requested for {email}")

    try:
        user = UserDatabase.get_user_by_email(email)
        if not user:
            raise ApiError(404, 'Email doesnt belong to any account..')

        expires_minutes = int(get_config_value('PASSWORD_RESET_EXPIRES_MINUTES', 10))
        raw_token, token_hash = create_password_reset_token()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
        UserDatabase.save_password_reset_token(user['id'], token_hash, expires_at)
    except sqlite3.Error as e:
        logger.error(f"Forgot password error: {e}")
        raise ApiError(500, 'internal server error')

    reset_url = f"{request.host_url}auth/resetpassword/{raw_token}"
    name = user.get('first_name') or user.get('username') or 'there'
    email_sent = email_service.send_password_reset_email(
        user['email'], name, raw_token, reset_url, expires_minutes
    )

    if not email_sent:
        UserDatabase.clear_password_reset_token(user['id'])
        raise ApiError(500, 'There was an error sending the email. Try again later.')

    LoggingService.log_user_action('auth', 'forgot_password', user['id'])
    return jsonify({
        'status': 'success',
        'message': 'Token sent to your email',
    }), 200


@auth_bp.route('/resetpassword', methods=['POST', 'PATCH'])
@auth_bp.route('/resetpassword/<token>', methods=['POST', 'PATCH'])
def reset_password(token=None):
    """Set a new password using the mailed reset token"""
    data = get_payload()
    raw_token = token or data.get('token')
    password = data.get('password') or ''

    if not raw_token:
        raise ApiError(400, 'Token invalid or expired')

    if not validate_password_strength(password):
        raise ApiError(400, 'Password must be at least 8 characters long.')

    try:
        user = UserDatabase.get_user_by_reset_token(hash_reset_token(raw_token))
        if not user:
            raise ApiError(400, 'Token invalid or expired')

        UserDatabase.update_password(user['id'], password)
    except sqlite3.Error as e:
        logger.error(f"Reset password error: {e}")
        raise ApiError(500, 'internal server error')

    name = user.get('first_name') or user.get('username') or 'there'
    email_service.send_password_changed_email(user['email'], name)
    LoggingService.log_user_action('auth', 'reset_password', user['id'])

    return jsonify({
        'status': 'success',
        'message': 'Password changed successfully....',
        'token': sign_token(user['id']),
        'UserId': user['id'],
    }), 200


@auth_bp.route('/updatepassword', methods=['PATCH', 'POST'])
@protect
def update_password():
    """Change password for the logged-in user"""
    data = get_payload()
    old_password = data.get('oldpassword') or ''
    new_password = data.get('newpassword') or ''

    if not UserDatabase.check_password(g.user, old_password):
        raise ApiError(401, 'Incorrect password. Check it and try again.')

    if not validate_password_strength(new_password):
        raise ApiError(400, 'Password must be at least 8 characters long.')

    try:
        UserDatabase.update_password(g.user['id'], new_password)
    except sqlite3.Error as e:
        logger.error(f"Update password error: {e}")
        raise ApiError(500, 'internal server error')

    access_token = sign_token(g.user['id'])
    response = make_response(jsonify({
        'message': 'Password successfully updated.',
        'access_token': access_token,
    }), 200)
    set_auth_cookie(response, access_token)

    LoggingService.log_user_action('auth', 'update_password', g.user['id'])
    return response
