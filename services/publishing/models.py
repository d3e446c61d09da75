"""
Upload session and publish result types.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class UploadSession:
    """Server-side upload context. ``offset`` is the next byte to send."""
    session_id: Optional[str] = None
    video_id: Optional[str] = None
    upload_url: Optional[str] = None
    file_size: int = 0
    offset: int = 0


@dataclass
class PublishResult:
    """Where a video ended up on Facebook."""
    video_id: str
    post_id: str
    url: str
    mode: str = "reel"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
