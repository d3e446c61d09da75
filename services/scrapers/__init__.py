"""
TikTok discovery through the Apify scraping actor.
"""

from .models import CandidateVideo, MediaMeta
from .tiktok_discovery import TikTokTrendingScraper

__all__ = [
    "CandidateVideo",
    "MediaMeta",
    "TikTokTrendingScraper",
]
