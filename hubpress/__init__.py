"""
HubPress - A Flask Blog Platform
================================

A modular Flask REST API for a blog/CMS with:
- JWT cookie authentication, password reset and admin accounts
- User profiles with image uploads
- Blog posts with S3 (or local) cover images
- Email subscriptions and a Cloudflare page-view pass-through

Usage:
    from flask import Flask
    from hubpress import HubPress

    app = Flask(__name__)
    HubPress(app)
"""

import logging
import os
from flask import abort, jsonify, send_from_directory

__version__ = '0.1.0'

logger = logging.getLogger(__name__)


class HubPress:
    """Flask extension wiring every HubPress module into an app.

    Config values passed in `config` override app.config, which in turn
    overrides the defaults on core.config.Config.
    """

    def __init__(self, app=None, config=None):
        self.app = None
        self._modules = []
        self._config = config or {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from .core.config import Config
        from .core.database import Database
        from .core.errors import register_error_handlers
        from .core.logging_service import configure_logging
        from .core.security import init_security

        self.app = app

        explicit_dbs = {
            key for key in ('USER_DB', 'BLOG_DB')
            if app.config.get(key) is not None or self._config.get(key) is not None or os.getenv(key)
        }

        for key in dir(Config):
            if key.isupper() and app.config.get(key) is None:
                app.config[key] = getattr(Config, key)
        app.config.update(self._config)

        # Database files follow the effective DB_DIR unless set explicitly
        if 'USER_DB' not in explicit_dbs:
            app.config['USER_DB'] = os.path.join(app.config['DB_DIR'], 'users.db')
        if 'BLOG_DB' not in explicit_dbs:
            app.config['BLOG_DB'] = os.path.join(app.config['DB_DIR'], 'blogs.db')

        configure_logging(app)

        with app.app_context():
            Database.ensure_dir(app.config['USER_DB'])
            Database.ensure_dir(app.config['BLOG_DB'])
            self._init_databases()

        init_security(app)
        register_error_handlers(app)

        from .modules.email import email_service
        email_service.init_app(app)

        self._register_modules(app)
        self._register_core_routes(app)

        app.extensions['hubpress'] = self
        logger.info(f"HubPress {__version__} initialized with modules: {', '.join(self._modules)}")

    def _init_databases(self):
        from .core.logging_service import LoggingService
        from .core.database import Database
        from .modules.auth import init_users_db
        from .modules.blog import init_blog_db
        from .modules.subscribers import init_subscribers_db

        init_users_db()
        init_subscribers_db()
        init_blog_db()

        conn = Database.connect(Database.user_db())
        try:
            LoggingService._ensure_logs_table(conn)
        finally:
            conn.close()

    def _register_modules(self, app):
        from .modules.auth import auth_bp
        from .modules.users import users_bp
        from .modules.subscribers import subscribers_bp
        from .modules.analytics import analytics_bp
        from .modules.blog import blog_bp

        for name, blueprint in (
            ('auth', auth_bp),
            ('users', users_bp),
            ('subscribers', subscribers_bp),
            ('analytics', analytics_bp),
            ('blog', blog_bp),
        ):
            app.register_blueprint(blueprint)
            self._modules.append(name)

    def _register_core_routes(self, app):
        from .core.database import Database

        @app.route('/health')
        def hubpress_health():
            databases_ok = Database.ping(Database.user_db()) and Database.ping(Database.blog_db())
            return jsonify({
                'status': 'ok',
                'database': 'ok' if databases_ok else 'error',
            })

        if (app.config.get('STORAGE_TYPE') or 'local').lower() != 's3':
            @app.route('/uploads/<path:key>')
            def hubpress_uploads(key):
                return send_from_directory(app.config['UPLOAD_FOLDER'], key)

        frontend_dist = app.config.get('FRONTEND_DIST')
        if frontend_dist and os.path.isfile(os.path.join(frontend_dist, 'index.html')):
            @app.route('/')
            def hubpress_frontend():
                return send_from_directory(frontend_dist, 'index.html')

            @app.route('/<path:filename>')
            def hubpress_frontend_assets(filename):
                if not os.path.isfile(os.path.join(frontend_dist, filename)):
                    abort(404)
                return send_from_directory(frontend_dist, filename)

            logger.info(f"Serving frontend bundle from {frontend_dist}")

    def get_registered_modules(self):
        """Names of the modules registered on the app"""
        return list(self._modules)


__all__ = ['HubPress', '__version__']
