"""
Reel Autopilot Service - status and manual-run API for the republishing pipeline.
Port: 6004
"""
import asyncio
import threading
from datetime import datetime

from flask import Flask, jsonify, request
from loguru import logger

from config.settings import SERVICE_NAME, SERVICE_PORT, SERVICE_VERSION, Settings
from services.dedup.store import VideoStore
from services.pipeline.reel_pipeline import ReelPipeline
from services.scheduler.cron import describe_cron_schedule
from shared.errors import ConfigurationError

app = Flask(__name__)
app.config["DATABASE_URL"] = Settings.from_env().database_url

# One manual run at a time per process
RUN_LOCK = threading.Lock()


def get_store() -> VideoStore:
    """Store for the configured database, opened on first use."""
    store = app.extensions.get("video_store")
    if store is None or store.database_url != app.config["DATABASE_URL"]:
        if store is not None:
            store.close()
        store = VideoStore(app.config["DATABASE_URL"]).open()
        app.extensions["video_store"] = store
    return store


async def _run_pipeline(settings: Settings, count: int):
    pipeline = ReelPipeline.from_settings(settings, get_store())
    try:
        return await pipeline.run(count)
    finally:
        await pipeline.aclose()


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": datetime.utcnow().isoformat()
    })


@app.route("/api/stats", methods=["GET"])
def stats():
    """Upload counts by status."""
    return jsonify({"status": "success", "stats": get_store().stats()})


@app.route("/api/recent", methods=["GET"])
def recent_uploads():
    """Most recently uploaded videos."""
    limit = request.args.get("limit", 10, type=int)
    if limit < 1:
        return jsonify({"error": "limit must be positive"}), 400

    videos = [record.to_dict() for record in get_store().recent(limit)]
    return jsonify({"status": "success", "count": len(videos), "videos": videos})


@app.route("/api/videos/<tiktok_id>", methods=["GET"])
def get_video(tiktok_id):
    record = get_store().get(tiktok_id)
    if record is None:
        return jsonify({"error": f"Video {tiktok_id} not found"}), 404
    return jsonify({"status": "success", "video": record.to_dict()})


@app.route("/api/schedule/describe", methods=["GET"])
def describe_schedule():
    expression = request.args.get("expression") or Settings.from_env().schedule_interval
    return jsonify({"expression": expression, "description": describe_cron_schedule(expression)})


@app.route("/api/pipeline/run", methods=["POST"])
def run_pipeline():
    """Run the pipeline once and return its summary."""
    data = request.get_json(silent=True) or {}
    settings = Settings.from_env()
    count = data.get("count", settings.videos_per_run)

    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        return jsonify({"error": "count must be a positive integer"}), 400

    try:
        settings.validate()
    except ConfigurationError as e:
        return jsonify({"status": "error", "error": str(e), "missing": e.missing}), 400

    if not RUN_LOCK.acquire(blocking=False):
        return jsonify({"status": "skipped", "error": "Pipeline already running"}), 409

    try:
        summary = asyncio.run(_run_pipeline(settings, count))
    except Exception as e:
        logger.error(f"Pipeline run failed: {e}")
        return jsonify({"status": "error", "error": str(e)}), 500
    finally:
        RUN_LOCK.release()

    return jsonify({"status": "success", "summary": summary.to_dict()})


if __name__ == "__main__":
    from shared.logging_config import setup_logging

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_dir)
    app.run(host="0.0.0.0", port=SERVICE_PORT, debug=False)
