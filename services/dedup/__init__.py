"""
Deduplication store for republished videos.
"""

from .models import VideoRecord, VideoStatus, hash_video_url
from .store import VideoStore

__all__ = [
    "VideoRecord",
    "VideoStatus",
    "VideoStore",
    "hash_video_url",
]
