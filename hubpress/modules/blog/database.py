import logging
import re
from ...core.database import Database, utcnow_iso

logger = logging.getLogger(__name__)

BLOG_FIELDS_JSON = {
    'id': 'id',
    'title': 'title',
    'slug': 'slug',
    'description': 'description',
    'content': 'content',
    'category': 'category',
    'image': 'image',
    'author_id': 'author',
    'author_name': 'authorName',
    'recommended_by_editor': 'recommendedByEditor',
    'published_at': 'publishedAt',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}

EDITABLE_FIELDS = ('title', 'description', 'content', 'category', 'image', 'recommended_by_editor')

LATEST_LIMIT = 3


def init_blog_db():
    """Initialize the blogs table"""
    blog_db = Database.blog_db()
    Database.ensure_dir(blog_db)

    conn = Database.connect(blog_db)
    try:
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS blogs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                slug TEXT NOT NULL UNIQUE,
                description TEXT,
                content TEXT NOT NULL,
                category TEXT,
                image TEXT,
                author_id INTEGER NOT NULL,
                author_name TEXT,
                recommended_by_editor BOOLEAN DEFAULT 0,
                published_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')
        Database.add_missing_columns(cursor, 'blogs', [
            ('author_name', 'TEXT'),
            ('recommended_by_editor', 'BOOLEAN DEFAULT 0'),
        ])
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_blogs_slug ON blogs(slug)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_blogs_category ON blogs(category)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_blogs_published ON blogs(published_at)')
        conn.commit()
        logger.debug("Blog database initialized successfully")
    finally:
        conn.close()


def slugify(title):
    """URL-friendly version of a title"""
    slug = re.sub(r'[^\w\s-]', '', (title or '').lower())
    slug = re.sub(r'[-\s]+', '-', slug)
    return slug.strip('-') or 'post'


def create_slug(title, exclude_id=None):
    """Create URL-friendly slug with uniqueness checking"""
    base_slug = slugify(title)
    slug = base_slug
    counter = 1

    conn = Database.connect(Database.blog_db())
    try:
        while True:
            row = conn.execute('SELECT id FROM blogs WHERE slug = ?', (slug,)).fetchone()
            if not row or row['id'] == exclude_id:
                break
            slug = f"{base_slug}-{counter}"
            counter += 1
    finally:
        conn.close()

    return slug


def serialize_blog(blog):
    if blog is None:
        return None
    data = {key: blog.get(column) for column, key in BLOG_FIELDS_JSON.items()}
    data['recommendedByEditor'] = bool(data['recommendedByEditor'])
    return data


class BlogDatabase:

    @staticmethod
    def _fetch_all(query, params=()):
        conn = Database.connect(Database.blog_db())
        try:
            return [dict(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    @staticmethod
    def _fetch_one(query, params):
        conn = Database.connect(Database.blog_db())
        try:
            row = conn.execute(query, params).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    @staticmethod
    def create_blog(title, content, author_id, author_name=None, description=None,
                    category=None, image=None):
        """Insert a post with a unique slug. Returns the stored row."""
        now = utcnow_iso()
        slug = create_slug(title)

        conn = Database.connect(Database.blog_db())
        try:
            cursor = conn.execute('''
                INSERT INTO blogs (title, slug, description, content, category, image,
                                   author_id, author_name, recommended_by_editor,
                                   published_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?)
            ''', (title, slug, description, content, category, image,
                  author_id, author_name, now, now, now))
            conn.commit()
            blog_id = cursor.lastrowid
        finally:
            conn.close()

        logger.info(f"Created blog {blog_id} with slug {slug}")
        return BlogDatabase.get_blog_by_id(blog_id)

    @staticmethod
    def get_all_blogs():
        return BlogDatabase._fetch_all('SELECT * FROM blogs ORDER BY created_at DESC, id DESC')

    @staticmethod
    def get_blogs_by_category(category):
        return BlogDatabase._fetch_all(
            'SELECT * FROM blogs WHERE category = ? ORDER BY created_at DESC, id DESC', (category,)
        )

    @staticmethod
    def get_blog_by_id(blog_id):
        return BlogDatabase._fetch_one('SELECT * FROM blogs WHERE id = ?', (blog_id,))

    @staticmethod
    def get_blog_by_slug(slug):
        return BlogDatabase._fetch_one('SELECT * FROM blogs WHERE slug = ?', (slug,))

    @staticmethod
    def search_blogs(pattern):
        """Case-insensitive regex match over title, description, content and category"""
        return BlogDatabase._fetch_all('''
            SELECT * FROM blogs
            WHERE IREGEXP(?, title) OR IREGEXP(?, description) OR IREGEXP(?, content) OR IREGEXP(?, category)
            ORDER BY created_at DESC, id DESC
        ''', (pattern, pattern, pattern, pattern))

    @staticmethod
    def get_latest_blogs(limit=LATEST_LIMIT):
        return BlogDatabase._fetch_all(
            'SELECT * FROM blogs ORDER BY published_at DESC, id DESC LIMIT ?', (limit,)
        )

    @staticmethod
    def get_recommended_blog():
        return BlogDatabase._fetch_one(
            'SELECT * FROM blogs WHERE recommended_by_editor = 1 ORDER BY updated_at DESC LIMIT 1', ()
        )

    @staticmethod
    def update_blog(blog_id, **kwargs):
        """Update a post. A new title regenerates the slug; recommending a
        post clears the flag on every other post. Returns the updated row."""
        set_clauses = []
        values = []

        for field, value in kwargs.items():
            if field in EDITABLE_FIELDS and value is not None:
                if field == 'recommended_by_editor':
                    value = 1 if value else 0
                set_clauses.append(f"{field} = ?")
                values.append(value)

        if 'title' in kwargs and kwargs['title']:
            set_clauses.append("slug = ?")
            values.append(create_slug(kwargs['title'], exclude_id=blog_id))

        if not set_clauses:
            return BlogDatabase.get_blog_by_id(blog_id)

        set_clauses.append("updated_at = ?")
        values.extend([utcnow_iso(), blog_id])

        conn = Database.connect(Database.blog_db())
        try:
            if kwargs.get('recommended_by_editor'):
                conn.execute(
                    'UPDATE blogs SET recommended_by_editor = 0 WHERE id != ? AND recommended_by_editor = 1',
                    (blog_id,)
                )
            conn.execute(f"UPDATE blogs SET {', '.join(set_clauses)} WHERE id = ?", values)
            conn.commit()
        finally:
            conn.close()

        return BlogDatabase.get_blog_by_id(blog_id)

    @staticmethod
    def delete_blog(blog_id):
        """Delete a post. Returns the deleted row, or None if it didn't exist."""
        blog = BlogDatabase.get_blog_by_id(blog_id)
        if not blog:
            return None

        conn = Database.connect(Database.blog_db())
        try:
            conn.execute('DELETE FROM blogs WHERE id = ?', (blog_id,))
            conn.commit()
        finally:
            conn.close()
        return blog

    @staticmethod
    def delete_all_blogs():
        """Delete every post. Returns the image keys of the deleted rows and the count."""
        conn = Database.connect(Database.blog_db())
        try:
            images = [row['image'] for row in conn.execute('SELECT image FROM blogs').fetchall()]
            cursor = conn.execute('DELETE FROM blogs')
            conn.commit()
            return images, cursor.rowcount
        finally:
            conn.close()
