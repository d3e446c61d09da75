"""
Video record types for the deduplication store.
"""
import hashlib
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class VideoStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    UPLOADED = "uploaded"
    FAILED = "failed"


def hash_video_url(url: str) -> str:
    """MD5 hex digest of a source URL, used as the content fingerprint."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class VideoRecord:
    """One row of uploaded_videos."""
    tiktok_id: str
    tiktok_url: str
    video_hash: str
    original_title: str = ""
    original_description: str = ""
    generated_title: Optional[str] = None
    generated_description: Optional[str] = None
    facebook_post_id: Optional[str] = None
    status: VideoStatus = VideoStatus.PENDING
    created_at: Optional[str] = None
    uploaded_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "VideoRecord":
        data = dict(row._mapping)
        return cls(
            tiktok_id=data["tiktok_id"],
            tiktok_url=data["tiktok_url"],
            video_hash=data["video_hash"],
            original_title=data.get("original_title") or "",
            original_description=data.get("original_description") or "",
            generated_title=data.get("generated_title"),
            generated_description=data.get("generated_description"),
            facebook_post_id=data.get("facebook_post_id"),
            status=VideoStatus(data["status"]),
            created_at=data.get("created_at"),
            uploaded_at=data.get("uploaded_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
