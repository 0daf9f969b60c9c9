import hashlib
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import g, request
from jose import JWTError, jwt
from werkzeug.security import generate_password_hash, check_password_hash
from ...core.config import get_config_value
from ...core.errors import ApiError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'
AUTH_COOKIE = 'jwt'
MIN_PASSWORD_LENGTH = 8


def hash_password(password):
    return generate_password_hash(password)


def verify_password(password_hash, password):
    return check_password_hash(password_hash, password)


def validate_password_strength(password):
    """Validate password meets length requirement"""
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


def sign_token(user_id):
    """Sign a JWT carrying the user id"""
    now = int(time.time())
    days = int(get_config_value('JWT_EXPIRES_DAYS', 1))
    claims = {
        'id': user_id,
        'iat': now,
        'exp': now + days * 24 * 60 * 60,
    }
    return jwt.encode(claims, get_config_value('JWT_PRIVATE_KEY'), algorithm=JWT_ALGORITHM)


def decode_token(token):
    """Verify a JWT and return its claims. Raises JWTError when invalid or expired."""
    return jwt.decode(token, get_config_value('JWT_PRIVATE_KEY'), algorithms=[JWT_ALGORITHM])


def create_password_reset_token():
    """Return (raw_token, sha256_hash). Only the hash is stored."""
    raw_token = secrets.token_hex(32)
    return raw_token, hash_reset_token(raw_token)


def hash_reset_token(raw_token):
    return hashlib.sha256(raw_token.encode()).hexdigest()


def password_changed_after(user, issued_at):
    """True when the user's password changed after the token was issued"""
    changed_at = user.get('password_changed_at')
    if not changed_at or issued_at is None:
        return False
    changed_ts = int(datetime.fromisoformat(changed_at).timestamp())
    return changed_ts > int(issued_at)


def set_auth_cookie(response, token):
    response.set_cookie(
        AUTH_COOKIE,
        token,
        httponly=True,
        secure=bool(get_config_value('JWT_COOKIE_SECURE', True)),
        samesite='Lax',
        expires=datetime.now(timezone.utc) + timedelta(days=1),
    )
    return response


def clear_auth_cookie(response):
    response.set_cookie(
        AUTH_COOKIE,
        'loggedout',
        httponly=True,
        secure=bool(get_config_value('JWT_COOKIE_SECURE', True)),
        samesite='Lax',
        expires=datetime.now(timezone.utc) + timedelta(seconds=1),
    )
    return response


def get_request_token():
    """Bearer token from the Authorization header, else the jwt cookie"""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer'):
        parts = auth_header.split(' ')
        return parts[1] if len(parts) > 1 and parts[1] else None
    token = request.cookies.get(AUTH_COOKIE)
    if token == 'loggedout':
        return None
    return token


def load_current_user():
    """Resolve the request's token to a user row, raising ApiError(401) on failure"""
    from .database import UserDatabase

    token = get_request_token()
    if not token:
        raise ApiError(401, 'You are not logged in. Please log in to get access...')

    try:
        decoded = decode_token(token)
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        raise ApiError(401, 'Invalid or expired token. Please log in again...')

    user = UserDatabase.get_user_by_id(decoded.get('id'))
    if not user:
        raise ApiError(401, 'Token no longer exists...')

    if password_changed_after(user, decoded.get('iat')):
        raise ApiError(401, 'Password changed. Log in again...')

    return user


def protect(f):
    """Decorator to require a valid JWT; the user is available as g.user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = load_current_user()
        return f(*args, **kwargs)
    return decorated_function


def restrict_to(*roles):
    """Decorator limiting a protected route to the given roles"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, 'user', None)
            if not user or user.get('role') not in roles:
                raise ApiError(403, 'You are not allowed to access this route.')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
