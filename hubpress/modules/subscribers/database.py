import logging
from ...core.database import Database, utcnow_iso

logger = logging.getLogger(__name__)


def init_subscribers_db():
    """Initialize the subscribers table in the user database"""
    db_path = Database.user_db()
    Database.ensure_dir(db_path)

    conn = Database.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS subscribers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                active BOOLEAN DEFAULT 1,
                subscribed_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                ip_address TEXT,
                user_agent TEXT
            )
        ''')
        Database.add_missing_columns(cursor, 'subscribers', [
            ('ip_address', 'TEXT'),
            ('user_agent', 'TEXT'),
        ])
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_subscribers_email ON subscribers(email)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_subscribers_active ON subscribers(active, subscribed_at)')
        conn.commit()
        logger.debug("Subscribers table created/verified successfully")
    finally:
        conn.close()


class SubscriberDatabase:

    @staticmethod
    def get_by_email(email):
        conn = Database.connect(Database.user_db())
        try:
            row = conn.execute('SELECT * FROM subscribers WHERE email = ?', (email,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    @staticmethod
    def add(email, ip_address=None, user_agent=None):
        """Insert a new active subscriber"""
        now = utcnow_iso()
        conn = Database.connect(Database.user_db())
        try:
            conn.execute('''
                INSERT INTO subscribers (email, active, subscribed_at, updated_at, ip_address, user_agent)
                VALUES (?, 1, ?, ?, ?, ?)
            ''', (email, now, now, ip_address, user_agent))
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def set_active(email, active, ip_address=None, user_agent=None):
        """Flip the active flag. Returns True if a row was updated."""
        conn = Database.connect(Database.user_db())
        try:
            if active:
                cursor = conn.execute('''
                    UPDATE subscribers
                    SET active = 1, updated_at = ?, ip_address = ?, user_agent = ?
                    WHERE email = ?
                ''', (utcnow_iso(), ip_address, user_agent, email))
            else:
                cursor = conn.execute(
                    'UPDATE subscribers SET active = 0, updated_at = ? WHERE email = ?',
                    (utcnow_iso(), email)
                )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    @staticmethod
    def get_all_subscriber_emails():
        """Emails of all active subscribers, oldest first"""
        conn = Database.connect(Database.user_db())
        try:
            rows = conn.execute(
                'SELECT email FROM subscribers WHERE active = 1 ORDER BY subscribed_at'
            ).fetchall()
            return [row['email'] for row in rows]
        finally:
            conn.close()

    @staticmethod
    def get_subscriber_count():
        conn = Database.connect(Database.user_db())
        try:
            return conn.execute('SELECT COUNT(*) FROM subscribers WHERE active = 1').fetchone()[0]
        finally:
            conn.close()
