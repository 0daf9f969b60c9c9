"""
HTTP hardening: CORS, security headers and a per-IP request limiter.
"""

import hashlib
import logging
import threading
import time
from flask import request, jsonify
from flask_cors import CORS

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = 'Too many requests from this IP, Please try again in an hour'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'X-DNS-Prefetch-Control': 'off',
    'Referrer-Policy': 'no-referrer',
    'Strict-Transport-Security': 'max-age=15552000; includeSubDomains',
    'Content-Security-Policy': (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "img-src 'self' data: *; "
        "style-src 'self' 'unsafe-inline'; "
        "connect-src 'self'"
    ),
}


def get_client_ip():
    """Get client IP address from request"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr or 'unknown'


class RateLimiter:
    """Fixed-window request counter keyed by hashed client IP"""

    def __init__(self, max_requests, window_seconds):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits = {}
        self._last_prune = None
        self._lock = threading.Lock()

    def is_limited(self, ip, now=None):
        """Record a hit for ip. Returns True if the window is already full."""
        now = time.time() if now is None else now
        ip_hash = hashlib.sha256(ip.encode()).hexdigest()[:16]

        with self._lock:
            self._prune(now)
            window_start, count = self._hits.get(ip_hash, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0

            if count >= self.max_requests:
                self._hits[ip_hash] = (window_start, count)
                return True

            self._hits[ip_hash] = (window_start, count + 1)
            return False

    def _prune(self, now):
        """Drop counters whose window has closed, at most once per window. Caller holds the lock."""
        if self._last_prune is not None and now - self._last_prune < self.window_seconds:
            return
        self._last_prune = now
        expired = [key for key, (start, _) in self._hits.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._hits[key]

    def reset(self):
        with self._lock:
            self._hits.clear()


def init_security(app):
    """Enable CORS, security headers and rate limiting on the app"""
    origins = app.config.get('CORS_ORIGINS', '*')
    if isinstance(origins, str) and origins != '*':
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    CORS(app, origins=origins, supports_credentials=True)

    limiter = RateLimiter(
        int(app.config.get('RATE_LIMIT_MAX', 1000)),
        int(app.config.get('RATE_LIMIT_WINDOW', 3600)),
    )
    app.extensions['hubpress_rate_limiter'] = limiter

    @app.before_request
    def _rate_limit():
        if not app.config.get('RATE_LIMIT_ENABLED', True) or request.method == 'OPTIONS':
            return None
        ip_address = get_client_ip()
        if limiter.is_limited(ip_address):
            logger.warning(f"Rate limit exceeded for {ip_address} on {request.path}")
            return jsonify({'status': 'Error', 'error_message': RATE_LIMIT_MESSAGE}), 429
        return None

    @app.after_request
    def _security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    return limiter
