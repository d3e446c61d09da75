"""
Tests for reel-autopilot service health and status endpoints.
"""
import pytest

from app import app
from services.dedup.models import hash_video_url


@pytest.fixture
def client(database_url):
    app.config['TESTING'] = True
    app.config['DATABASE_URL'] = database_url
    with app.test_client() as client:
        yield client
    store = app.extensions.pop('video_store', None)
    if store is not None:
        store.close()


@pytest.fixture
def seeded_store(client):
    from app import get_store

    store = get_store()
    for video_id in ("1", "2"):
        url = f"https://www.tiktok.com/@c/video/{video_id}"
        store.record_new(video_id, url, hash_video_url(url))
    store.set_generated_content("1", "Wait For It... 😱", "desc")
    store.mark_uploaded("1", "fb_1")
    store.mark_failed("2")
    return store


def test_health_endpoint(client):
    """Test health check returns healthy status."""
    response = client.get('/health')
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'healthy'
    assert data['service'] == 'reel-autopilot'
    assert 'version' in data
    assert 'timestamp' in data


def test_stats_endpoint(client, seeded_store):
    """Test stats endpoint returns counts per status."""
    response = client.get('/api/stats')
    assert response.status_code == 200
    stats = response.get_json()['stats']
    assert stats['total'] == 2
    assert stats['uploaded'] == 1
    assert stats['failed'] == 1


def test_recent_endpoint(client, seeded_store):
    """Test recent endpoint lists uploaded videos only."""
    response = client.get('/api/recent?limit=5')
    assert response.status_code == 200
    data = response.get_json()
    assert data['count'] == 1
    assert data['videos'][0]['tiktok_id'] == '1'
    assert data['videos'][0]['generated_title'] == 'Wait For It... 😱'


def test_recent_rejects_bad_limit(client):
    """Test invalid limit returns 400."""
    response = client.get('/api/recent?limit=0')
    assert response.status_code == 400


def test_video_lookup(client, seeded_store):
    """Test single video lookup and 404 for unknown ids."""
    response = client.get('/api/videos/2')
    assert response.status_code == 200
    assert response.get_json()['video']['status'] == 'failed'

    missing = client.get('/api/videos/404')
    assert missing.status_code == 404


def test_describe_schedule(client):
    """Test cron descriptions are human readable."""
    response = client.get('/api/schedule/describe', query_string={'expression': '*/10 * * * *'})
    assert response.get_json()['description'] == 'Every 10 minutes'


def test_run_requires_configuration(client, monkeypatch):
    """Test manual run is refused without credentials."""
    for name in ("APIFY_API_TOKEN", "FACEBOOK_PAGE_ID", "FACEBOOK_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)

    response = client.post('/api/pipeline/run', json={'count': 2})
    assert response.status_code == 400
    data = response.get_json()
    assert data['status'] == 'error'
    assert 'APIFY_API_TOKEN' in data['missing']


def test_run_rejects_invalid_count(client):
    """Test manual run rejects a non-positive count."""
    response = client.post('/api/pipeline/run', json={'count': 0})
    assert response.status_code == 400
    assert 'error' in response.get_json()
