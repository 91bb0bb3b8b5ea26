# utils/database_manager.py - persistence gateway over the sqlite store
import sqlite3
import logging
from contextlib import contextmanager
from typing import Optional, Dict, List, Any
from datetime import datetime, timezone
from pathlib import Path

from database_models import User, Post
from utils.error_handler import StoreError

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Sortable ISO-8601 timestamp with microsecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


class DatabaseManager:
    """🗄️ Maps domain operations for users and posts onto store queries"""

    def __init__(self, db_path: str = "campus_connect.db", timeout: int = 30):
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_database_directory()

        self.initialize_database()
        logger.info(f"✅ DatabaseManager ready: {db_path}")

    def _ensure_database_directory(self):
        db_dir = Path(self.db_path).parent
        if not db_dir.exists():
            db_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"📁 Created database directory: {db_dir}")

    @contextmanager
    def get_connection(self):
        """
        🔗 Connection context manager

        Commits when the block succeeds, rolls back otherwise. sqlite errors
        leave as StoreError.

        Usage:
            with db_manager.get_connection() as conn:
                conn.execute("SELECT * FROM users")
        """
        conn = None
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()

        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"❌ Store error: {e}")
            raise StoreError(f"Store operation failed: {e}", details={'database_path': self.db_path}) from e
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    def execute_query(self, query: str, params: tuple = (), fetch_one: bool = False) -> Any:
        """
        📝 Run a SELECT

        Returns a dict (fetch_one) or a list of dicts.
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(query, params)

                if fetch_one:
                    result = cursor.fetchone()
                    return dict(result) if result else None
                return [dict(row) for row in cursor.fetchall()]

        except StoreError as e:
            logger.error(f"   query: {query}")
            logger.error(f"   params: {params}")
            e.details['query'] = query
            raise

    def execute_command(self, query: str, params: tuple = ()) -> int:
        """
        ⚡ Run an INSERT/UPDATE/DELETE

        Returns:
            last inserted row id for INSERT, affected row count otherwise
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(query, params)

                if query.strip().upper().startswith('INSERT'):
                    return cursor.lastrowid
                return cursor.rowcount

        except StoreError as e:
            logger.error(f"   query: {query}")
            logger.error(f"   params: {params}")
            e.details['query'] = query
            raise

    def initialize_database(self):
        """🏗️ Create tables and indexes if missing"""
        with self.get_connection() as conn:
            # email is not UNIQUE: signup checks for an existing user first
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    password TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS posts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    image_url TEXT NOT NULL,
                    caption TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at)")

        logger.info("✅ Tables initialized")

    # 👤 Users
    def find_user_by_email(self, email: str) -> Optional[User]:
        row = self.execute_query(
            "SELECT id, first_name, last_name, email, password, created_at FROM users WHERE email = ? ORDER BY id LIMIT 1",
            (email,),
            fetch_one=True
        )
        return User.from_row(row) if row else None

    def create_user(self, first_name: str, last_name: str, email: str, password: str) -> User:
        created_at = utc_timestamp()
        user_id = self.execute_command(
            "INSERT INTO users (first_name, last_name, email, password, created_at) VALUES (?, ?, ?, ?, ?)",
            (first_name, last_name, email, password, created_at)
        )
        logger.info(f"👤 User created: id={user_id}")
        return User(user_id, first_name, last_name, email, password, created_at)

    def list_user_display_names(self) -> List[str]:
        """Display name of every user, in store order"""
        rows = self.execute_query("SELECT id, first_name, last_name, email, password, created_at FROM users")
        return [User.from_row(row).display_name for row in rows]

    # 🖼️ Posts
    def create_post(self, image_url: str, caption: str) -> Post:
        created_at = utc_timestamp()
        post_id = self.execute_command(
            "INSERT INTO posts (image_url, caption, created_at) VALUES (?, ?, ?)",
            (image_url, caption, created_at)
        )
        logger.info(f"🖼️ Post created: id={post_id}")
        return Post(post_id, image_url, caption, created_at)

    def list_posts(self) -> List[Post]:
        """All posts, newest first"""
        rows = self.execute_query(
            "SELECT id, image_url, caption, created_at FROM posts ORDER BY created_at DESC, id DESC"
        )
        return [Post.from_row(row) for row in rows]

    # 🏥 Health
    def health_check(self) -> Dict[str, Any]:
        try:
            start_time = datetime.now()

            with self.get_connection() as conn:
                conn.execute("SELECT 1").fetchone()

            response_time = (datetime.now() - start_time).total_seconds()

            return {
                'status': 'healthy',
                'response_time_seconds': response_time,
                'database_path': self.db_path,
                'timestamp': datetime.now().isoformat()
            }

        except StoreError as e:
            return {
                'status': 'unhealthy',
                'error': e.message,
                'database_path': self.db_path,
                'timestamp': datetime.now().isoformat()
            }

    def ensure_available(self):
        """Raise StoreError unless the store answers"""
        health = self.health_check()
        if health['status'] != 'healthy':
            raise StoreError(
                f"Store unavailable: {health.get('error')}",
                details={'database_path': self.db_path}
            )
