"""SQLite post store implementation."""

import re
import sqlite3
import time
import uuid
from collections.abc import Generator, Iterable, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

from hypeseeker.store.errors import (
    InvalidChannelNameError,
    StoreConnectionError,
    UnknownChannelError,
)
from hypeseeker.store.metrics import StoreMetrics, TransactionContext
from hypeseeker.store.migrations import (
    CURRENT_VERSION,
    MigrationManager,
    ensure_columns,
    table_columns,
)
from hypeseeker.store.models import ItemEventType, Post, TimeWindow, UpsertResult
from hypeseeker.store.moderation import ContentPolicy, PopularityRanker


logger = structlog.get_logger()

CHANNEL_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
SENT_COLUMN_PREFIX = "sent_to_"

_CONTENT_COLUMNS = (
    "id",
    "source",
    "username",
    "name",
    "stars",
    "description",
    "url",
    "created_at",
)
_SCORING_COLUMNS = (
    "relevance_score",
    "matched_interest",
    "summary",
    "relevance",
)


def _to_db(value: datetime | None) -> str | None:
    """Serialize a timestamp as a UTC ISO-8601 string."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def sent_column(channel: str) -> str:
    """Column name holding the sent marker for a channel.

    Raises:
        InvalidChannelNameError: If the name is not a safe identifier.
    """
    if not CHANNEL_NAME_PATTERN.match(channel):
        raise InvalidChannelNameError(channel)
    return f"{SENT_COLUMN_PREFIX}{channel}"


class PostStore:
    """SQLite store for posts, their scores and per-channel sent markers.

    Every write is a single-row transaction that merges into the existing
    row, so re-running any phase leaves the same state. Reads apply the
    content policy and, for ``query``, the popularity ranker.
    """

    def __init__(
        self,
        db_path: Path | str,
        policy: ContentPolicy | None = None,
        ranker: PopularityRanker | None = None,
        scoring_window_days: int = 7,
        query_limit: int = 500,
        run_id: str | None = None,
    ) -> None:
        """Initialize the post store.

        Args:
            db_path: Path to SQLite database file.
            policy: Content policy applied to every read.
            ranker: Ranker used by ``query``.
            scoring_window_days: Age limit for posts still eligible for scoring.
            query_limit: Row cap for ``query`` before filtering.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._policy = policy or ContentPolicy()
        self._ranker = ranker or PopularityRanker()
        self._scoring_window = timedelta(days=scoring_window_days)
        self._query_limit = query_limit
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._channels: set[str] = set()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    @property
    def channels(self) -> frozenset[str]:
        """Channels that have a sent-marker column."""
        return frozenset(self._channels)

    def connect(self) -> None:
        """Open the database, enable WAL mode and apply migrations.

        Raises:
            StoreConnectionError: If the database cannot be opened.
        """
        if self._conn is not None:
            return

        self._log.info("connecting_to_database")

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
        except (OSError, sqlite3.Error) as exc:
            self._log.error("database_open_failed", error=str(exc))
            raise StoreConnectionError(
                f"Cannot open database {self._db_path}: {exc}"
            ) from exc

        self._conn = conn
        migration_mgr = MigrationManager(conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()
        self._channels = self._discover_channels(conn)

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
            channels=sorted(self._channels),
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "PostStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(
            tx_id=tx_id, start_time_ns=start_ns, operation=operation
        )

        try:
            yield ctx
            conn.commit()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)

            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

        except Exception:
            conn.rollback()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000

            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )
            raise

    # ===== Channels =====

    @staticmethod
    def _discover_channels(conn: sqlite3.Connection) -> set[str]:
        return {
            column[len(SENT_COLUMN_PREFIX) :]
            for column in table_columns(conn, "posts")
            if column.startswith(SENT_COLUMN_PREFIX)
        }

    def register_channels(self, names: Iterable[str]) -> list[str]:
        """Make sure each channel has a sent-marker column.

        Columns are only ever added. Registering an existing channel is a no-op.

        Args:
            names: Channel names, e.g. ``["telegram", "slack"]``.

        Returns:
            Channels whose column was created by this call.

        Raises:
            InvalidChannelNameError: If a name is not a safe identifier.
        """
        conn = self._ensure_connected()
        columns = tuple(("posts", sent_column(name), "TEXT") for name in names)

        with self._transaction("register_channels") as ctx:
            added = ensure_columns(conn, columns)
            ctx.add_affected_rows(len(added))

        self._channels = self._discover_channels(conn)
        created = [column[len(SENT_COLUMN_PREFIX) :] for column in added]
        if created:
            self._log.info("channels_registered", channels=created)
        return created

    def _channel_column(self, channel: str) -> str:
        column = sent_column(channel)
        if channel not in self._channels:
            raise UnknownChannelError(channel)
        return column

    # ===== Row mapping =====

    def _row_to_post(self, row: sqlite3.Row) -> Post:
        keys = set(row.keys())
        sent_at: dict[str, datetime] = {}
        for channel in self._channels:
            column = f"{SENT_COLUMN_PREFIX}{channel}"
            if column in keys:
                marker = _from_db(row[column])
                if marker is not None:
                    sent_at[channel] = marker

        score = row["relevance_score"]
        return Post(
            id=row["id"],
            source=row["source"],
            username=row["username"] or "",
            name=row["name"] or "",
            stars=row["stars"] or 0,
            description=row["description"] or "",
            url=row["url"] or "",
            created_at=_from_db(row["created_at"]) or datetime.fromtimestamp(0, UTC),
            relevance_score=score,
            matched_interest=row["matched_interest"],
            summary=row["summary"],
            relevance=row["relevance"],
            # Rows written by older versions may have a score without a timestamp
            scored_at=_from_db(row["scored_at"]) if score is not None else None,
            sent_at=sent_at,
            inserted_at=_from_db(row["inserted_at"]),
        )

    def _visible(self, rows: Sequence[sqlite3.Row]) -> list[Post]:
        return self._policy.filter(self._row_to_post(row) for row in rows)

    def _first_visible(self, cursor: sqlite3.Cursor, limit: int) -> list[Post]:
        """Walk an ordered cursor until ``limit`` posts pass the policy.

        Hidden posts do not count toward the limit.
        """
        posts: list[Post] = []
        if limit <= 0:
            return posts
        for row in cursor:
            post = self._row_to_post(row)
            if not self._policy.is_valid(post):
                continue
            posts.append(post)
            if len(posts) >= limit:
                break
        return posts

    # ===== Writes =====

    def upsert(self, post: Post, now: datetime | None = None) -> UpsertResult:
        """Insert a post or merge it into the existing row.

        Content fields ``stars`` and ``description`` are always refreshed.
        Scoring fields and sent markers only take the incoming value when it
        is non-null, so a re-fetch never erases a score or a marker.

        Args:
            post: Post to store.
            now: Timestamp used for ``inserted_at`` and a missing ``scored_at``.

        Returns:
            UpsertResult with NEW or UPDATED.

        Raises:
            UnknownChannelError: If the post carries a marker for an
                unregistered channel.
        """
        conn = self._ensure_connected()
        now = now or datetime.now(UTC)

        scored_at: datetime | None = None
        if post.relevance_score is not None:
            scored_at = post.scored_at or now

        sent_columns = [self._channel_column(ch) for ch in sorted(post.sent_at)]
        sent_values = [_to_db(post.sent_at[ch]) for ch in sorted(post.sent_at)]

        columns = [
            *_CONTENT_COLUMNS,
            *_SCORING_COLUMNS,
            "scored_at",
            "inserted_at",
            *sent_columns,
        ]
        values: list[Any] = [
            post.id,
            post.source,
            post.username,
            post.name,
            post.stars,
            post.description,
            post.url,
            _to_db(post.created_at),
            post.relevance_score,
            post.matched_interest,
            post.summary,
            post.relevance,
            _to_db(scored_at),
            _to_db(now),
            *sent_values,
        ]

        updates = [
            "stars = excluded.stars",
            "description = excluded.description",
            *(f"{c} = COALESCE(excluded.{c}, {c})" for c in _SCORING_COLUMNS),
            "scored_at = CASE WHEN excluded.relevance_score IS NOT NULL "
            "THEN excluded.scored_at ELSE scored_at END",
            *(f"{c} = COALESCE({c}, excluded.{c})" for c in sent_columns),
        ]

        sql = (
            f"INSERT INTO posts ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id, source) DO UPDATE SET {', '.join(updates)}"
        )

        with self._transaction("upsert") as ctx:
            existing = conn.execute(
                "SELECT 1 FROM posts WHERE id = ? AND source = ?",
                (post.id, post.source),
            ).fetchone()
            cursor = conn.execute(sql, values)
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT * FROM posts WHERE id = ? AND source = ?",
                (post.id, post.source),
            ).fetchone()

        if existing is None:
            event_type = ItemEventType.NEW
            self._metrics.record_insert()
        else:
            event_type = ItemEventType.UPDATED
            self._metrics.record_merge()

        return UpsertResult(event_type=event_type, post=self._row_to_post(row))

    def update_score(
        self,
        key: tuple[str, str],
        score: float,
        matched_interest: str | None,
        now: datetime | None = None,
    ) -> bool:
        """Record a relevance score for a post.

        Args:
            key: ``(id, source)`` of the post.
            score: Relevance in [0, 1].
            matched_interest: Interest the post matched, if any.
            now: Scoring timestamp.

        Returns:
            True if the post exists and was updated.

        Raises:
            ValueError: If the score is outside [0, 1].
        """
        if not 0.0 <= score <= 1.0:
            msg = f"relevance score out of range: {score}"
            raise ValueError(msg)

        conn = self._ensure_connected()
        post_id, source = key
        with self._transaction("update_score") as ctx:
            cursor = conn.execute(
                """
                UPDATE posts
                SET relevance_score = ?, matched_interest = ?, scored_at = ?
                WHERE id = ? AND source = ?
                """,
                (
                    score,
                    matched_interest,
                    _to_db(now or datetime.now(UTC)),
                    post_id,
                    source.lower(),
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)

        if cursor.rowcount:
            self._metrics.record_score()
        return cursor.rowcount > 0

    def update_enrichment(
        self, key: tuple[str, str], summary: str, relevance: str
    ) -> bool:
        """Record the summary and relevance explanation for a post.

        Returns:
            True if the post exists and was updated.
        """
        conn = self._ensure_connected()
        post_id, source = key
        with self._transaction("update_enrichment") as ctx:
            cursor = conn.execute(
                """
                UPDATE posts SET summary = ?, relevance = ?
                WHERE id = ? AND source = ?
                """,
                (summary, relevance, post_id, source.lower()),
            )
            ctx.add_affected_rows(cursor.rowcount)

        if cursor.rowcount:
            self._metrics.record_enrichment()
        return cursor.rowcount > 0

    def mark_sent(
        self,
        channel: str,
        posts: Iterable[Post],
        now: datetime | None = None,
    ) -> int:
        """Set the channel's sent marker on posts that do not have one.

        Call only after the channel accepted every message containing the
        posts. Markers already set keep their original timestamp.

        Returns:
            Number of posts newly marked.

        Raises:
            UnknownChannelError: If the channel is not registered.
        """
        column = self._channel_column(channel)
        conn = self._ensure_connected()
        stamp = _to_db(now or datetime.now(UTC))
        marked = 0

        with self._transaction(f"mark_sent_{channel}") as ctx:
            for post in posts:
                cursor = conn.execute(
                    f"UPDATE posts SET {column} = ? "
                    f"WHERE id = ? AND source = ? AND {column} IS NULL",
                    (stamp, post.id, post.source),
                )
                marked += cursor.rowcount
            ctx.add_affected_rows(marked)

        self._metrics.record_marked_sent(marked)
        self._log.info("posts_marked_sent", channel=channel, count=marked)
        return marked

    # ===== Reads =====

    def query(
        self,
        window: TimeWindow | str,
        sources: Iterable[str],
        now: datetime | None = None,
    ) -> list[Post]:
        """Visible posts from the given sources, ranked by popularity.

        Args:
            window: Creation-time window.
            sources: Source names, case-insensitive.
            now: Reference time for the window.

        Returns:
            Posts passing the content policy, highest rank first.
        """
        conn = self._ensure_connected()
        window = TimeWindow(window)
        wanted = sorted({s.strip().lower() for s in sources if s.strip()})
        if not wanted:
            return []

        cutoff = (now or datetime.now(UTC)) - window.delta
        placeholders = ", ".join("?" for _ in wanted)
        rows = conn.execute(
            f"""
            SELECT * FROM posts
            WHERE source IN ({placeholders})
              AND julianday(created_at) >= julianday(?)
            ORDER BY stars DESC
            LIMIT ?
            """,
            (*wanted, _to_db(cutoff), self._query_limit),
        ).fetchall()

        return self._ranker.rank(self._visible(rows))

    def get_unscored(self, limit: int = 300, now: datetime | None = None) -> list[Post]:
        """Unscored posts still inside the scoring window, most popular first.

        Posts older than the window are never returned again, scored or not.
        """
        conn = self._ensure_connected()
        cutoff = (now or datetime.now(UTC)) - self._scoring_window
        cursor = conn.execute(
            """
            SELECT * FROM posts
            WHERE relevance_score IS NULL
              AND julianday(created_at) >= julianday(?)
            ORDER BY stars DESC
            """,
            (_to_db(cutoff),),
        )
        return self._first_visible(cursor, limit)

    def get_top_scored(self, min_score: float = 0.6, limit: int = 50) -> list[Post]:
        """Scored posts above the threshold that have no summary yet."""
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT * FROM posts
            WHERE relevance_score >= ?
              AND summary IS NULL
            ORDER BY relevance_score DESC, stars DESC
            """,
            (min_score,),
        )
        return self._first_visible(cursor, limit)

    def get_unsent(
        self,
        channel: str,
        min_score: float,
        recency_hours: int = 24,
        now: datetime | None = None,
    ) -> list[Post]:
        """Recent, relevant posts not yet delivered to a channel.

        Raises:
            UnknownChannelError: If the channel is not registered.
        """
        column = self._channel_column(channel)
        conn = self._ensure_connected()
        cutoff = (now or datetime.now(UTC)) - timedelta(hours=recency_hours)
        rows = conn.execute(
            f"""
            SELECT * FROM posts
            WHERE relevance_score IS NOT NULL
              AND relevance_score >= ?
              AND {column} IS NULL
              AND julianday(created_at) >= julianday(?)
            ORDER BY relevance_score DESC, stars DESC
            """,
            (min_score, _to_db(cutoff)),
        ).fetchall()
        return self._visible(rows)

    def get_post(self, post_id: str, source: str) -> Post | None:
        """Get a post by its identity, ignoring the content policy."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM posts WHERE id = ? AND source = ?",
            (post_id, source.lower()),
        ).fetchone()
        return self._row_to_post(row) if row else None

    def get_last_updated(self) -> datetime | None:
        """Most recent insertion time, or None for an empty store."""
        conn = self._ensure_connected()
        row = conn.execute("SELECT MAX(inserted_at) FROM posts").fetchone()
        return _from_db(row[0])

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        conn = self._ensure_connected()
        total = conn.execute("SELECT COUNT(*) FROM posts").fetchone()[0]
        scored = conn.execute(
            "SELECT COUNT(*) FROM posts WHERE relevance_score IS NOT NULL"
        ).fetchone()[0]
        enriched = conn.execute(
            "SELECT COUNT(*) FROM posts WHERE summary IS NOT NULL"
        ).fetchone()[0]
        by_source = {
            row["source"]: row["count"]
            for row in conn.execute(
                "SELECT source, COUNT(*) AS count FROM posts GROUP BY source"
            )
        }
        sent = {
            channel: conn.execute(
                f"SELECT COUNT(*) FROM posts WHERE {SENT_COLUMN_PREFIX}{channel} IS NOT NULL"
            ).fetchone()[0]
            for channel in sorted(self._channels)
        }

        return {
            "total": total,
            "scored": scored,
            "enriched": enriched,
            "by_source": by_source,
            "sent": sent,
            "schema_version": self.get_schema_version(),
        }

    def get_schema_version(self) -> int:
        """Get current schema version."""
        conn = self._ensure_connected()
        return MigrationManager(conn).get_current_version()
