"""
SQLite persistence for documentation versions and repositories.
Every row of ``documentation_versions`` is one immutable snapshot.
"""

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..documentation.models import Repository
from ..exceptions import PersistenceFailure
from ..utils import ensure_directory, logger, utcnow, parse_timestamp


class ChangeEventType(Enum):
    """Kinds of row changes announced on the change feed."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class ChangeNotification:
    """A row change delivered to feed subscribers."""
    event_type: ChangeEventType
    table: str
    record: Dict[str, Any]
    timestamp: datetime = field(default_factory=utcnow)


ChangeListener = Callable[[ChangeNotification], None]


class DocumentationStore:
    """Persistent storage for documentation versions."""

    def __init__(self, db_path: Optional[Path] = None, team_id: str = "default"):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
            team_id: Team owning the rows written through this store
        """
        if db_path is None:
            db_path = Path.home() / ".livingdocs" / "livingdocs.db"

        self.db_path = Path(db_path)
        ensure_directory(self.db_path.parent)
        self.team_id = team_id
        self._listeners: List[ChangeListener] = []

        self._init_database()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection in autocommit mode; callers manage transactions."""
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema."""
        try:
            with self.connect() as conn:
                conn.executescript("""
                    CREATE TABLE IF NOT EXISTS repositories (
                        id TEXT PRIMARY KEY,
                        team_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        url TEXT,
                        description TEXT,
                        language TEXT,
                        last_updated TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS documentation_versions (
                        id TEXT PRIMARY KEY,
                        team_id TEXT NOT NULL,
                        repository_id TEXT NOT NULL,
                        version INTEGER NOT NULL,
                        title TEXT NOT NULL,
                        sections TEXT NOT NULL,
                        status TEXT NOT NULL,
                        generation_metadata TEXT,
                        created_by TEXT,
                        created_at TEXT NOT NULL,
                        UNIQUE (repository_id, version)
                    );

                    CREATE INDEX IF NOT EXISTS idx_versions_repository
                    ON documentation_versions(repository_id, version);

                    CREATE INDEX IF NOT EXISTS idx_versions_team
                    ON documentation_versions(team_id, created_at);
                """)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to initialize database {self.db_path}: {e}") from e

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change-feed listener; returns its unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event_type: ChangeEventType, table: str, record: Dict[str, Any]):
        notification = ChangeNotification(event_type=event_type, table=table, record=record)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Error in change listener for {table}: {e}")

    # Repositories

    def save_repository(self, repository: Repository) -> Repository:
        """Insert or update a repository record."""
        record = {
            'id': repository.id,
            'team_id': self.team_id,
            'name': repository.name,
            'url': repository.url,
            'description': repository.description,
            'language': repository.language,
            'last_updated': repository.last_updated.isoformat(),
        }
        try:
            with self.connect() as conn:
                exists = conn.execute(
                    "SELECT 1 FROM repositories WHERE id = ?", (repository.id,)
                ).fetchone()
                conn.execute("""
                    INSERT INTO repositories (id, team_id, name, url, description, language, last_updated)
                    VALUES (:id, :team_id, :name, :url, :description, :language, :last_updated)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        url = excluded.url,
                        description = excluded.description,
                        language = excluded.language,
                        last_updated = excluded.last_updated
                """, record)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to save repository {repository.id}: {e}") from e

        event = ChangeEventType.UPDATE if exists else ChangeEventType.INSERT
        self._notify(event, 'repositories', record)
        return repository

    def get_repository(self, repository_id: str) -> Optional[Repository]:
        try:
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM repositories WHERE id = ?", (repository_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to load repository {repository_id}: {e}") from e

        if row is None:
            return None
        return Repository(
            id=row['id'],
            name=row['name'],
            url=row['url'],
            description=row['description'],
            language=row['language'],
            last_updated=parse_timestamp(row['last_updated']) or utcnow(),
        )

    def list_repositories(self) -> List[Repository]:
        try:
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT id FROM repositories WHERE team_id = ? ORDER BY name",
                    (self.team_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to list repositories: {e}") from e
        return [self.get_repository(row['id']) for row in rows]

    # Versions

    def max_version(self, repository_id: str) -> int:
        """Highest stored version number for a repository, 0 if none."""
        try:
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT COALESCE(MAX(version), 0) FROM documentation_versions "
                    "WHERE repository_id = ?",
                    (repository_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to read latest version of {repository_id}: {e}") from e
        return int(row[0])

    def insert_version(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a snapshot numbered ``max(version) + 1`` for its repository.

        The read of the current maximum and the insert share one write
        transaction, so concurrent writers always receive distinct numbers.

        Args:
            record: Row values without ``version``; JSON columns as Python objects

        Returns:
            The stored row including its assigned ``version``
        """
        row = dict(record)
        row.setdefault('team_id', self.team_id)

        try:
            with self.connect() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    current = conn.execute(
                        "SELECT COALESCE(MAX(version), 0) FROM documentation_versions "
                        "WHERE repository_id = ?",
                        (row['repository_id'],),
                    ).fetchone()[0]
                    row['version'] = int(current) + 1

                    conn.execute("""
                        INSERT INTO documentation_versions (
                            id, team_id, repository_id, version, title, sections,
                            status, generation_metadata, created_by, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """, (
                        row['id'], row['team_id'], row['repository_id'], row['version'],
                        row['title'],
                        json.dumps(row['sections'], ensure_ascii=False),
                        row['status'],
                        json.dumps(row.get('generation_metadata') or {}),
                        json.dumps(row['created_by']) if row.get('created_by') else None,
                        row['created_at'],
                    ))
                    conn.execute("COMMIT")
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
        except sqlite3.Error as e:
            raise PersistenceFailure(
                f"Failed to store version for repository {row['repository_id']}: {e}"
            ) from e

        logger.debug(f"Stored version {row['version']} of {row['repository_id']} as {row['id']}")
        self._notify(ChangeEventType.INSERT, 'documentation_versions', row)
        return row

    def get_version_row(self, version_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM documentation_versions WHERE id = ?", (version_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to load version {version_id}: {e}") from e
        return self._decode(row) if row else None

    def list_version_rows(self, repository_id: str) -> List[Dict[str, Any]]:
        """All snapshots of a repository, newest first."""
        try:
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM documentation_versions WHERE repository_id = ? "
                    "ORDER BY version DESC",
                    (repository_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to list versions of {repository_id}: {e}") from e
        return [self._decode(row) for row in rows]

    def latest_version_rows(self, team_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest snapshot of every repository, most recently written first."""
        query = """
            SELECT v.*, r.name AS repository_name
            FROM documentation_versions v
            JOIN (
                SELECT repository_id, MAX(version) AS version
                FROM documentation_versions
                GROUP BY repository_id
            ) latest
              ON v.repository_id = latest.repository_id AND v.version = latest.version
            LEFT JOIN repositories r ON r.id = v.repository_id
            WHERE (? IS NULL OR v.team_id = ?)
            ORDER BY v.created_at DESC, v.rowid DESC
        """
        try:
            with self.connect() as conn:
                rows = conn.execute(query, (team_id, team_id)).fetchall()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to list latest documentation: {e}") from e
        return [self._decode(row) for row in rows]

    @staticmethod
    def _decode(row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data['sections'] = json.loads(data['sections']) if data.get('sections') else []
        metadata = data.get('generation_metadata')
        data['generation_metadata'] = json.loads(metadata) if metadata else {}
        created_by = data.get('created_by')
        data['created_by'] = json.loads(created_by) if created_by else None
        return data
