"""
Video Deduplication Store
=========================
Durable record of every video the autopilot has seen, keyed by TikTok id.

A video blocks re-processing by id only once it reached ``uploaded``.
The URL fingerprint blocks regardless of status, so the same media
arriving under a different id is never republished.
"""
import threading
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from shared.errors import RecordNotFoundError, StoreError

from .models import VideoRecord, VideoStatus, utc_now

MAX_TITLE_LENGTH = 100


class VideoStore:
    """SQLAlchemy-backed store for uploaded_videos."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def open(self) -> "VideoStore":
        """Create the engine and make sure the schema exists."""
        if self._engine is not None:
            return self

        url = make_url(self.database_url)
        connect_args = {}
        if url.get_backend_name() == "sqlite":
            # Flask serves requests from worker threads; writes go through self._lock
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_engine(self.database_url, connect_args=connect_args)
        self._ensure_tables()
        logger.info(f"📦 Video store ready ({url.render_as_string(hide_password=True)})")
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.debug("Video store closed")

    def __enter__(self) -> "VideoStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StoreError("Video store is not open")
        return self._engine

    def _ensure_tables(self):
        with self._lock, self.engine.begin() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS uploaded_videos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tiktok_id TEXT UNIQUE NOT NULL,
                    tiktok_url TEXT NOT NULL,
                    video_hash TEXT NOT NULL,
                    original_title TEXT,
                    original_description TEXT,
                    generated_title TEXT,
                    generated_description TEXT,
                    facebook_post_id TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at TEXT NOT NULL,
                    uploaded_at TEXT
                )
            """))
            conn.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_uploaded_videos_tiktok_id ON uploaded_videos(tiktok_id)"
            ))
            conn.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_uploaded_videos_hash ON uploaded_videos(video_hash)"
            ))
            conn.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_uploaded_videos_status ON uploaded_videos(status)"
            ))

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_processed(self, tiktok_id: str) -> bool:
        """True only when the video was successfully uploaded."""
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM uploaded_videos WHERE tiktok_id = :id AND status = :status"),
                {"id": tiktok_id, "status": VideoStatus.UPLOADED.value}
            ).first()
        return row is not None

    def hash_exists(self, video_hash: str, exclude_id: Optional[str] = None) -> bool:
        """
        True if any record, in any status, carries this fingerprint.

        Rows belonging to ``exclude_id`` are ignored so an item can be
        retried under its own id.
        """
        query = "SELECT 1 FROM uploaded_videos WHERE video_hash = :hash"
        params = {"hash": video_hash}
        if exclude_id is not None:
            query += " AND tiktok_id != :exclude_id"
            params["exclude_id"] = exclude_id

        with self.engine.connect() as conn:
            row = conn.execute(text(query), params).first()
        return row is not None

    def get(self, tiktok_id: str) -> Optional[VideoRecord]:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT * FROM uploaded_videos WHERE tiktok_id = :id"),
                {"id": tiktok_id}
            ).first()
        return VideoRecord.from_row(row) if row else None

    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in VideoStatus}
        with self.engine.connect() as conn:
            rows = conn.execute(text(
                "SELECT status, COUNT(*) AS n FROM uploaded_videos GROUP BY status"
            )).fetchall()
        for status, n in rows:
            counts[status] = n
        return {"total": sum(counts.values()), **counts}

    def recent(self, limit: int = 10) -> List[VideoRecord]:
        """Most recently uploaded videos, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT * FROM uploaded_videos
                    WHERE status = :status
                    ORDER BY uploaded_at DESC
                    LIMIT :limit
                """),
                {"status": VideoStatus.UPLOADED.value, "limit": limit}
            ).fetchall()
        return [VideoRecord.from_row(row) for row in rows]

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def record_new(
        self,
        tiktok_id: str,
        tiktok_url: str,
        video_hash: str,
        title: str = "",
        description: str = ""
    ) -> bool:
        """
        Insert a pending record. Returns False when the id already existed,
        in which case nothing is changed.
        """
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(
                text("""
                    INSERT INTO uploaded_videos
                    (tiktok_id, tiktok_url, video_hash, original_title,
                     original_description, status, created_at)
                    VALUES (:id, :url, :hash, :title, :description, :status, :created_at)
                    ON CONFLICT(tiktok_id) DO NOTHING
                """),
                {
                    "id": tiktok_id,
                    "url": tiktok_url,
                    "hash": video_hash,
                    "title": (title or "")[:MAX_TITLE_LENGTH],
                    "description": description or "",
                    "status": VideoStatus.PENDING.value,
                    "created_at": utc_now(),
                }
            )
            inserted = result.rowcount == 1

        if inserted:
            logger.debug(f"Recorded video {tiktok_id}")
        return inserted

    def set_generated_content(self, tiktok_id: str, title: str, description: str) -> None:
        self._update(
            tiktok_id,
            """
            UPDATE uploaded_videos
            SET generated_title = :title, generated_description = :description, status = :status
            WHERE tiktok_id = :id
            """,
            {"title": title, "description": description, "status": VideoStatus.READY.value}
        )

    def mark_uploaded(self, tiktok_id: str, remote_id: str) -> None:
        self._update(
            tiktok_id,
            """
            UPDATE uploaded_videos
            SET facebook_post_id = :remote_id, status = :status, uploaded_at = :uploaded_at
            WHERE tiktok_id = :id
            """,
            {"remote_id": remote_id, "status": VideoStatus.UPLOADED.value, "uploaded_at": utc_now()}
        )
        logger.info(f"✅ Marked {tiktok_id} as uploaded (Facebook id {remote_id})")

    def mark_failed(self, tiktok_id: str) -> bool:
        """Flag a record as failed. Returns False if the id is unknown."""
        try:
            self._update(
                tiktok_id,
                "UPDATE uploaded_videos SET status = :status WHERE tiktok_id = :id",
                {"status": VideoStatus.FAILED.value}
            )
        except RecordNotFoundError:
            logger.warning(f"⚠️  Cannot mark unknown video {tiktok_id} as failed")
            return False
        return True

    def _update(self, tiktok_id: str, statement: str, params: Dict) -> None:
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(text(statement), {"id": tiktok_id, **params})
            if result.rowcount == 0:
                raise RecordNotFoundError(tiktok_id)
