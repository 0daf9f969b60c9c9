"""
Centralized logging for the HubPress application.

- configure_logging() wires console and file output for the `hubpress` logger
- LoggingService stores structured events (logins, sign-ups, security
  warnings) in the app_logs table so they survive restarts
"""

import json
import logging
import os
import sqlite3
import time
from datetime import datetime, timedelta, timezone
from flask import request, has_request_context
from .database import Database

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s UTC %(levelname)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(app):
    """Attach console and file handlers to the package logger.

    The console handler is added once per process. Each distinct LOG_FILE
    gets its own file handler, so every app configured in the process
    writes to the file it asked for.
    """
    package_logger = logging.getLogger('hubpress')
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'DEBUG')).upper(), logging.DEBUG)
    package_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    formatter.converter = time.gmtime

    if not any(getattr(h, '_hubpress_console', False) for h in package_logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        console._hubpress_console = True
        package_logger.addHandler(console)

    log_file = app.config.get('LOG_FILE')
    if log_file:
        log_path = os.path.abspath(log_file)
        already_attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == log_path
            for h in package_logger.handlers
        )
        if not already_attached:
            try:
                os.makedirs(os.path.dirname(log_path), exist_ok=True)
                file_handler = logging.FileHandler(log_path)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)
            except OSError as e:
                logger.warning(f"File logging disabled, could not open {log_file}: {e}")

    return package_logger


class LoggingService:
    """Persistent logging service for application events"""

    @staticmethod
    def _ensure_logs_table(conn):
        """Ensure the app_logs table exists"""
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                level TEXT NOT NULL,
                source TEXT NOT NULL,
                message TEXT NOT NULL,
                details TEXT,
                ip_address TEXT,
                user_agent TEXT,
                request_path TEXT,
                user_id TEXT
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_timestamp
            ON app_logs(timestamp DESC)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_level
            ON app_logs(level)
        """)

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        user_agent = request.headers.get('User-Agent', '')[:500]
        return ip_address, user_agent, request.path

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (auth, blog, subscribers, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id: Optional user identifier
        """
        level = level.upper()
        logging.getLogger(f'hubpress.{source}').log(
            getattr(logging, level, logging.INFO), message
        )

        try:
            ip_address, user_agent, request_path = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, default=str)

            conn = Database.connect(Database.user_db())
            try:
                LoggingService._ensure_logs_table(conn)
                conn.execute("""
                    INSERT INTO app_logs
                    (timestamp, level, source, message, details, ip_address, user_agent, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now(timezone.utc).isoformat(), level, source, message, details,
                    ip_address, user_agent, request_path,
                    str(user_id) if user_id is not None else None
                ))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Logging service error: {e}")

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_user_action(source, action, user_id=None, details=None):
        """Log user actions (login, signup, password change, etc.)"""
        LoggingService.info(source, f"User action: {action}", details, user_id)

    @staticmethod
    def log_security_event(message, details=None):
        """Log security-related events"""
        LoggingService.warning('security', message, details)

    @staticmethod
    def get_recent_logs(limit=100, level=None, source=None):
        """Return the newest log entries, optionally filtered"""
        clauses = []
        params = []
        if level:
            clauses.append('level = ?')
            params.append(level.upper())
        if source:
            clauses.append('source = ?')
            params.append(source)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
        params.append(limit)

        conn = Database.connect(Database.user_db())
        try:
            LoggingService._ensure_logs_table(conn)
            rows = conn.execute(f"""
                SELECT * FROM app_logs {where}
                ORDER BY id DESC
                LIMIT ?
            """, params).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    def cleanup_old_logs(days_to_keep=30):
        """Clean up old log entries"""
        cutoff_iso = (datetime.now(timezone.utc) - timedelta(days=days_to_keep)).isoformat()

        conn = Database.connect(Database.user_db())
        try:
            LoggingService._ensure_logs_table(conn)
            cursor = conn.execute("DELETE FROM app_logs WHERE timestamp < ?", (cutoff_iso,))
            deleted_count = cursor.rowcount
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Cleaned up {deleted_count} old log entries")
        return deleted_count
