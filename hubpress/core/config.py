import os
from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Base configuration for HubPress.
    Projects override any of these through app.config or environment variables.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(10 * 1024 * 1024)))

    # JWT settings
    JWT_PRIVATE_KEY = os.getenv('JWT_PRIVATE_KEY', 'dev-jwt-key-change-in-production')
    JWT_EXPIRES_DAYS = int(os.getenv('JWT_EXPIRES_DAYS', '1'))
    JWT_COOKIE_SECURE = _env_bool('JWT_COOKIE_SECURE', True)
    PASSWORD_RESET_EXPIRES_MINUTES = int(os.getenv('PASSWORD_RESET_EXPIRES_MINUTES', '10'))

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    USER_DB = os.getenv('USER_DB', os.path.join(DB_DIR, 'users.db'))
    BLOG_DB = os.getenv('BLOG_DB', os.path.join(DB_DIR, 'blogs.db'))

    # Table names
    USERS_TABLE = 'users'
    BLOGS_TABLE = 'blogs'
    SUBSCRIBERS_TABLE = 'subscribers'

    # Object storage (S3 or local folder)
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME')
    STORAGE_TYPE = os.getenv('STORAGE_TYPE', 's3' if S3_BUCKET_NAME else 'local')
    AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
    AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY')
    S3_ENDPOINT_URL = os.getenv('S3_ENDPOINT_URL')
    SIGNED_URL_EXPIRES = int(os.getenv('SIGNED_URL_EXPIRES', '3600'))
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))

    # Email settings
    EMAIL_PROVIDER = os.getenv('EMAIL_PROVIDER', 'smtp')
    EMAIL_ADDRESS = os.getenv('EMAIL_ADDRESS', 'no-reply@hub256.live')
    EMAIL_PASSWORD = os.getenv('EMAIL_PASSWORD')
    EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
    EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
    RESEND_API_KEY = os.getenv('RESEND_API_KEY')
    EMAIL_BRAND_NAME = os.getenv('EMAIL_BRAND_NAME', 'Hub256')

    # Cloudflare analytics
    CLOUDFLARE_TOKEN = os.getenv('CLOUDFLARE_TOKEN')
    CLOUDFLARE_EMAIL = os.getenv('CLOUDFLARE_EMAIL')
    CLOUDFLARE_ZONE_TAG = os.getenv('CLOUDFLARE_ZONE_TAG', '')
    CLOUDFLARE_GRAPHQL_URL = os.getenv('CLOUDFLARE_GRAPHQL_URL', 'https://api.cloudflare.com/client/v4/graphql')

    # HTTP
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    RATE_LIMIT_ENABLED = _env_bool('RATE_LIMIT_ENABLED', True)
    RATE_LIMIT_MAX = int(os.getenv('RATE_LIMIT_MAX', '1000'))
    RATE_LIMIT_WINDOW = int(os.getenv('RATE_LIMIT_WINDOW', '3600'))
    FRONTEND_DIST = os.getenv('FRONTEND_DIST', os.path.join(os.getcwd(), 'dist'))

    # Logging
    LOG_FILE = os.getenv('LOG_FILE', os.path.join(os.getcwd(), 'logs', 'app.log'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')

    # Port for local server
    port = int(os.getenv('PORT', '5000'))


def get_config_value(key, default=None):
    """Get configuration value: Flask app config first, then Config, then env var"""
    try:
        from flask import current_app
        if key in current_app.config:
            return current_app.config[key]
    except RuntimeError:
        pass
    val = getattr(Config, key, None)
    if val is not None:
        return val
    return os.getenv(key, default)


def is_cloud_storage():
    """Check if images go to S3 rather than the local upload folder"""
    return (get_config_value('STORAGE_TYPE') or 'local').lower() == 's3'
