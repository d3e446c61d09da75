"""
Acquisition Chain
=================
Resolve a TikTok URL through an ordered list of download services and
stream the first hit to local disk.
"""
import time
from pathlib import Path
from typing import List, Optional, Union

import httpx
from loguru import logger

from shared.errors import AcquisitionError

from .resolvers import Resolver, default_resolvers, resolver_name

MIN_VIDEO_BYTES = 1000
DOWNLOAD_TIMEOUT = 120.0


class AcquisitionChain:
    """
    Downloads a video by trying each resolver in order.

    The first resolver that yields a URL wins; later ones are never
    called. A resolver that raises is logged and skipped.
    """

    def __init__(
        self,
        download_dir: Union[str, Path],
        resolvers: Optional[List[Resolver]] = None,
        client: Optional[httpx.AsyncClient] = None,
        min_file_size: int = MIN_VIDEO_BYTES
    ):
        self.download_dir = Path(download_dir)
        self.download_dir.mkdir(parents=True, exist_ok=True)
        self.min_file_size = min_file_size
        self._client = client
        self._resolvers = resolvers
        self._default_resolvers = resolvers is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    @property
    def resolvers(self) -> List[Resolver]:
        if self._resolvers is None:
            self._resolvers = default_resolvers(self._get_client())
        return self._resolvers

    async def resolve(self, source_url: str) -> str:
        """Return the first direct media URL any resolver produces."""
        last_error: Optional[str] = None

        for resolver in self.resolvers:
            name = resolver_name(resolver)
            try:
                video_url = await resolver(source_url)
            except Exception as e:
                last_error = f"{name}: {e}"
                logger.warning(f"⚠️  {name} failed for {source_url}: {e}")
                continue

            if video_url:
                logger.info(f"🔗 Resolved {source_url} via {name}")
                return video_url

            last_error = f"{name}: no video URL"
            logger.warning(f"⚠️  {name} returned no video URL for {source_url}")

        raise AcquisitionError(f"All download services failed: {last_error or 'no resolvers configured'}")

    async def acquire(self, source_url: str, item_id: str) -> Path:
        """
        Download ``source_url`` to ``video_<id>_<epoch_ms>.mp4``.

        Raises AcquisitionError if no resolver works, the transfer fails,
        or the file is too small to be a real video. No partial file is
        left behind on failure.
        """
        video_url = await self.resolve(source_url)
        output_path = self.download_dir / f"video_{item_id}_{int(time.time() * 1000)}.mp4"

        try:
            await self._stream_to_file(video_url, output_path)
        except (httpx.HTTPError, OSError) as e:
            output_path.unlink(missing_ok=True)
            raise AcquisitionError(f"Download failed for {item_id}: {e}") from e

        size = output_path.stat().st_size
        if size < self.min_file_size:
            output_path.unlink(missing_ok=True)
            raise AcquisitionError(
                f"Downloaded file too small for {item_id}: {size} bytes (minimum {self.min_file_size})"
            )

        logger.info(f"📥 Downloaded {item_id}: {size / 1024 / 1024:.2f} MB -> {output_path.name}")
        return output_path

    async def _stream_to_file(self, video_url: str, output_path: Path):
        client = self._get_client()
        async with client.stream("GET", video_url, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            if self._default_resolvers:
                self._resolvers = None
