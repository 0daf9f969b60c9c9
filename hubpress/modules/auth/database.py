import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from ...core.database import Database, utcnow_iso
from .utils import hash_password, verify_password

logger = logging.getLogger(__name__)

USER_FIELDS_JSON = {
    'id': 'id',
    'username': 'username',
    'first_name': 'firstName',
    'last_name': 'lastName',
    'email': 'email',
    'role': 'role',
    'image': 'image',
    'bio': 'bio',
    'is_authenticated': 'isAuthenticated',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}

PROFILE_FIELDS = ('username', 'first_name', 'last_name', 'bio', 'image')


def init_users_db():
    """Initialize the users table"""
    user_db = Database.user_db()
    Database.ensure_dir(user_db)

    conn = Database.connect(user_db)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT,
                first_name TEXT,
                last_name TEXT,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'user',
                image TEXT,
                bio TEXT,
                is_authenticated BOOLEAN DEFAULT 0,
                password_changed_at TEXT,
                password_reset_token TEXT,
                password_reset_expires TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        Database.add_missing_columns(cursor, 'users', [
            ('bio', 'TEXT'),
            ('password_changed_at', 'TEXT'),
            ('password_reset_token', 'TEXT'),
            ('password_reset_expires', 'TEXT'),
        ])
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_reset_token ON users(password_reset_token)")
        conn.commit()
        logger.debug("Users table initialized successfully")
    finally:
        conn.close()


def default_username(first_name, last_name):
    """firstName + lastName, lower-cased, whitespace removed"""
    return re.sub(r'\s+', '', f"{first_name or ''}{last_name or ''}").lower()


def serialize_user(user):
    """Public JSON view of a user row - never includes secrets"""
    if user is None:
        return None
    data = {key: user.get(column) for column, key in USER_FIELDS_JSON.items()}
    data['isAuthenticated'] = bool(data['isAuthenticated'])
    return data


class UserDatabase:

    @staticmethod
    def _fetch_one(query, params):
        conn = Database.connect(Database.user_db())
        try:
            row = conn.execute(query, params).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    @staticmethod
    def _execute(query, params):
        conn = Database.connect(Database.user_db())
        try:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    @staticmethod
    def get_user_by_email(email):
        """Get user by email address"""
        return UserDatabase._fetch_one(
            "SELECT * FROM users WHERE email = ?", ((email or '').strip().lower(),)
        )

    @staticmethod
    def get_user_by_id(user_id):
        """Get user by ID"""
        return UserDatabase._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    @staticmethod
    def create_user(email, password, first_name=None, last_name=None, username=None, role='user'):
        """Create a new user. Returns the stored row, or None if the email is taken."""
        now = utcnow_iso()
        username = username or default_username(first_name, last_name) or email.split('@')[0]

        conn = Database.connect(Database.user_db())
        try:
            cursor = conn.execute("""
                INSERT INTO users (username, first_name, last_name, email, password_hash,
                                   role, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (username, first_name, last_name, email.strip().lower(),
                  hash_password(password), role, now, now))
            conn.commit()
            user_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            return None  # User already exists
        finally:
            conn.close()

        return UserDatabase.get_user_by_id(user_id)

    @staticmethod
    def check_password(user, password):
        return bool(user and password and verify_password(user['password_hash'], password))

    @staticmethod
    def set_authenticated(user_id, authenticated=True):
        return UserDatabase._execute(
            "UPDATE users SET is_authenticated = ?, updated_at = ? WHERE id = ?",
            (1 if authenticated else 0, utcnow_iso(), user_id)
        ) > 0

    @staticmethod
    def update_password(user_id, new_password):
        """Store a new password, drop any reset token and stamp password_changed_at.

        The stamp is set one second in the past so a token signed right after
        the change is still accepted.
        """
        changed_at = (datetime.now(timezone.utc) - timedelta(seconds=1)).isoformat()
        return UserDatabase._execute("""
            UPDATE users
            SET password_hash = ?, password_changed_at = ?,
                password_reset_token = NULL, password_reset_expires = NULL,
                updated_at = ?
            WHERE id = ?
        """, (hash_password(new_password), changed_at, utcnow_iso(), user_id)) > 0

    @staticmethod
    def save_password_reset_token(user_id, token_hash, expires_at):
        """Save the hashed password reset token (replaces any previous one)"""
        return UserDatabase._execute("""
            UPDATE users SET password_reset_token = ?, password_reset_expires = ?, updated_at = ?
            WHERE id = ?
        """, (token_hash, expires_at.isoformat(), utcnow_iso(), user_id)) > 0

    @staticmethod
    def clear_password_reset_token(user_id):
        return UserDatabase._execute("""
            UPDATE users SET password_reset_token = NULL, password_reset_expires = NULL
            WHERE id = ?
        """, (user_id,)) > 0

    @staticmethod
    def get_user_by_reset_token(token_hash):
        """Get the user owning an unexpired reset token"""
        return UserDatabase._fetch_one("""
            SELECT * FROM users
            WHERE password_reset_token = ? AND password_reset_expires > ?
        """, (token_hash, utcnow_iso()))

    @staticmethod
    def get_all_users():
        conn = Database.connect(Database.user_db())
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at DESC").fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    def search_users(pattern):
        """Users whose username, first or last name matches the regex pattern"""
        conn = Database.connect(Database.user_db())
        try:
            rows = conn.execute("""
                SELECT * FROM users
                WHERE username REGEXP ? OR first_name REGEXP ? OR last_name REGEXP ?
                ORDER BY created_at DESC
            """, (pattern, pattern, pattern)).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    def update_profile(user_id, **kwargs):
        """Update user profile information. Returns the updated row."""
        set_clauses = []
        values = []

        for field, value in kwargs.items():
            if field in PROFILE_FIELDS and value is not None:
                set_clauses.append(f"{field} = ?")
                values.append(value.strip() if isinstance(value, str) else value)

        if not set_clauses:
            return UserDatabase.get_user_by_id(user_id)

        set_clauses.append("updated_at = ?")
        values.extend([utcnow_iso(), user_id])

        UserDatabase._execute(f"UPDATE users SET {', '.join(set_clauses)} WHERE id = ?", values)
        return UserDatabase.get_user_by_id(user_id)

    @staticmethod
    def delete_user(user_id):
        """Delete a user. Returns the deleted row, or None if it didn't exist."""
        user = UserDatabase.get_user_by_id(user_id)
        if not user:
            return None
        UserDatabase._execute("DELETE FROM users WHERE id = ?", (user_id,))
        return user
