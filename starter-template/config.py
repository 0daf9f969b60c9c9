import os
from dotenv import load_dotenv

load_dotenv()

IS_PRODUCTION = (
    os.getenv('ENVIRONMENT') == 'production' or
    os.getenv('FLASK_ENV') == 'production' or
    os.getenv('PRODUCTION') == '1'
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_DIR = os.path.join(BASE_DIR, 'databases')


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_PRIVATE_KEY = os.getenv('JWT_PRIVATE_KEY', 'dev-jwt-key-change-in-production')
    JWT_COOKIE_SECURE = IS_PRODUCTION

    # Database paths
    DB_DIR = DB_DIR
    USER_DB = os.path.join(DB_DIR, 'users.db')
    BLOG_DB = os.path.join(DB_DIR, 'blogs.db')

    # Images: S3 when a bucket is configured, otherwise ./uploads
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME')
    STORAGE_TYPE = 's3' if S3_BUCKET_NAME else 'local'
    UPLOAD_FOLDER = os.path.join(BASE_DIR, 'uploads')

    # Email
    EMAIL_PROVIDER = os.getenv('EMAIL_PROVIDER', 'smtp')
    EMAIL_ADDRESS = os.getenv('EMAIL_ADDRESS', '')
    EMAIL_PASSWORD = os.getenv('EMAIL_PASSWORD', '')
    RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
    EMAIL_BRAND_NAME = 'My HubPress Blog'

    # Built React frontend
    FRONTEND_DIST = os.path.join(BASE_DIR, 'dist')
    LOG_FILE = os.path.join(BASE_DIR, 'logs', 'app.log')

    # Cloudflare analytics (optional)
    CLOUDFLARE_TOKEN = os.getenv('CLOUDFLARE_TOKEN', '')
    CLOUDFLARE_EMAIL = os.getenv('CLOUDFLARE_EMAIL', '')
    CLOUDFLARE_ZONE_TAG = os.getenv('CLOUDFLARE_ZONE_TAG', '')
