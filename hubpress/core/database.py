import os
import re
import sqlite3
from datetime import datetime, timezone
from .config import get_config_value


def _regexp(pattern, value):
    """SQLite REGEXP operator: `value REGEXP pattern`"""
    if value is None:
        return False
    return re.search(pattern, str(value)) is not None


def _iregexp(pattern, value):
    """Case-insensitive match, called as IREGEXP(pattern, value)"""
    if value is None:
        return False
    return re.search(pattern, str(value), re.IGNORECASE) is not None


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


class Database:

    @staticmethod
    def connect(path):
        """Open a connection with dict-like rows and the regex functions registered"""
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        conn.create_function('REGEXP', 2, _regexp)
        conn.create_function('IREGEXP', 2, _iregexp)
        return conn

    @staticmethod
    def user_db():
        return get_config_value('USER_DB')

    @staticmethod
    def blog_db():
        return get_config_value('BLOG_DB')

    @staticmethod
    def ensure_dir(db_path):
        """Create the directory holding a database file (only if there's a directory component)"""
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    @staticmethod
    def add_missing_columns(cursor, table, new_columns):
        """Add columns introduced after a table was first created"""
        cursor.execute(f"PRAGMA table_info({table})")
        columns = [column[1] for column in cursor.fetchall()]
        for col_name, col_type in new_columns:
            if col_name not in columns:
                cursor.execute(f'ALTER TABLE {table} ADD COLUMN {col_name} {col_type}')

    @staticmethod
    def ping(db_path):
        """Return True when the database answers a trivial query"""
        try:
            conn = Database.connect(db_path)
            try:
                conn.execute('SELECT 1').fetchone()
                return True
            finally:
                conn.close()
        except sqlite3.Error:
            return False
