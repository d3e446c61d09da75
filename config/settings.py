"""
Reel Autopilot service configuration.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from shared.errors import ConfigurationError

# Service settings
SERVICE_NAME = "reel-autopilot"
SERVICE_VERSION = "1.0.0"
SERVICE_PORT = int(os.getenv("PORT", 6004))

# Paths
BASE_DIR = Path(__file__).parent.parent
DOWNLOAD_DIR = Path(os.getenv("DOWNLOAD_DIR", BASE_DIR / "downloads"))
LOG_DIR = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'data' / 'videos.db'}")

# Facebook Graph API
FACEBOOK_GRAPH_URL = "https://graph.facebook.com"
FACEBOOK_API_VERSION = os.getenv("FACEBOOK_API_VERSION", "v18.0")

# Scheduling
DEFAULT_SCHEDULE = "0 */2 * * *"
DEFAULT_VIDEOS_PER_RUN = 3

TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY


@dataclass
class Settings:
    """Runtime settings resolved from the environment."""
    apify_api_token: str = ""
    facebook_page_id: str = ""
    facebook_access_token: str = ""
    facebook_api_version: str = FACEBOOK_API_VERSION
    facebook_graph_url: str = FACEBOOK_GRAPH_URL
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    database_url: str = DATABASE_URL
    download_dir: Path = DOWNLOAD_DIR
    log_dir: Path = LOG_DIR
    log_level: str = "INFO"
    upload_mode: str = "reel"
    schedule_interval: str = DEFAULT_SCHEDULE
    videos_per_run: int = DEFAULT_VIDEOS_PER_RUN
    run_on_start: bool = False
    tiktok_hashtags: List[str] = field(default_factory=lambda: ["viral", "trending", "fyp"])
    min_views: int = 10000
    min_likes: int = 500

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        hashtags = os.getenv("TIKTOK_HASHTAGS", "viral,trending,fyp")
        return cls(
            apify_api_token=os.getenv("APIFY_API_TOKEN", ""),
            facebook_page_id=os.getenv("FACEBOOK_PAGE_ID", ""),
            facebook_access_token=os.getenv("FACEBOOK_ACCESS_TOKEN", ""),
            facebook_api_version=os.getenv("FACEBOOK_API_VERSION", FACEBOOK_API_VERSION),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            database_url=os.getenv("DATABASE_URL", DATABASE_URL),
            download_dir=Path(os.getenv("DOWNLOAD_DIR", DOWNLOAD_DIR)),
            log_dir=Path(os.getenv("LOG_DIR", LOG_DIR)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            upload_mode=os.getenv("UPLOAD_MODE", "reel").lower(),
            schedule_interval=os.getenv("SCHEDULE_INTERVAL", DEFAULT_SCHEDULE),
            videos_per_run=int(os.getenv("VIDEOS_PER_RUN", DEFAULT_VIDEOS_PER_RUN)),
            run_on_start=_env_flag("RUN_ON_START"),
            tiktok_hashtags=[tag.strip() for tag in hashtags.split(",") if tag.strip()],
            min_views=int(os.getenv("TIKTOK_MIN_VIEWS", 10000)),
            min_likes=int(os.getenv("TIKTOK_MIN_LIKES", 500)),
        )

    def validate(self) -> None:
        """Raise ConfigurationError unless the pipeline can talk to its services."""
        required = {
            "APIFY_API_TOKEN": self.apify_api_token,
            "FACEBOOK_PAGE_ID": self.facebook_page_id,
            "FACEBOOK_ACCESS_TOKEN": self.facebook_access_token,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing
            )
        if self.upload_mode not in ("reel", "video"):
            raise ConfigurationError(f"UPLOAD_MODE must be 'reel' or 'video', got {self.upload_mode!r}")
        if self.videos_per_run < 1:
            raise ConfigurationError("VIDEOS_PER_RUN must be at least 1")
