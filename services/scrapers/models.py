"""
Candidate video contract returned by discovery.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class MediaMeta(BaseModel):
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None


class CandidateVideo(BaseModel):
    """A trending TikTok video eligible for republishing."""
    id: str = Field(..., description="TikTok video id")
    url: str = Field(..., description="Public TikTok URL")
    text: str = Field(default="", description="Original caption")
    author: str = Field(default="unknown")
    author_nickname: str = Field(default="")
    hashtags: List[str] = Field(default_factory=list)
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    music: Optional[str] = None
    create_time: Optional[str] = None
    media_meta: MediaMeta = Field(default_factory=MediaMeta)
