"""
Shared fixtures for reel-autopilot tests.
"""
from pathlib import Path

import pytest

from services.dedup.store import VideoStore
from services.scrapers.models import CandidateVideo


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'data' / 'videos.db'}"


@pytest.fixture
def store(database_url):
    video_store = VideoStore(database_url).open()
    yield video_store
    video_store.close()


def make_candidate(video_id: str, **overrides) -> CandidateVideo:
    data = {
        "id": video_id,
        "url": f"https://www.tiktok.com/@creator/video/{video_id}",
        "text": f"Original caption {video_id} #funny",
        "author": "creator",
        "hashtags": ["funny", "pets"],
        "views": 250000,
        "likes": 12000,
    }
    data.update(overrides)
    return CandidateVideo(**data)


@pytest.fixture
def candidate_factory():
    return make_candidate
