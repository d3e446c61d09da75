"""
Facebook Page Publisher
=======================
Uploads local video files to a Facebook Page through the Graph API.

Two protocols are supported:

- Chunked resumable upload (``/{page}/videos``): start a session, send
  4 MiB chunks at the offset the server asks for, finish, wait for
  processing, then publish with a title and description.
- Reels (``/{page}/video_reels``): start, push the whole file to the
  returned upload URL in one request, then finish with PUBLISHED state.

Graph error payloads become PublishRejectedError, transport failures
become TransferError.
"""
import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx
from loguru import logger

from shared.errors import (
    ProcessingError,
    ProcessingTimeoutError,
    PublishError,
    PublishRejectedError,
    TransferError,
)

from .models import PublishResult, UploadSession
from .retry import RetryManager

GRAPH_URL = "https://graph.facebook.com"
API_VERSION = "v18.0"
CHUNK_SIZE = 4 * 1024 * 1024
MAX_CHUNK_ATTEMPTS = 3
RETRY_BASE_DELAY = 2.0
POLL_INTERVAL = 5.0
PROCESSING_TIMEOUT = 300.0
REQUEST_TIMEOUT = 60.0
UPLOAD_TIMEOUT = 600.0


class FacebookPublisher:
    """Graph API client for one Facebook Page."""

    def __init__(
        self,
        page_id: str,
        access_token: str,
        api_version: str = API_VERSION,
        graph_url: str = GRAPH_URL,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = CHUNK_SIZE,
        max_chunk_attempts: int = MAX_CHUNK_ATTEMPTS,
        retry_base_delay: float = RETRY_BASE_DELAY,
        poll_interval: float = POLL_INTERVAL,
        processing_timeout: float = PROCESSING_TIMEOUT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.page_id = page_id
        self.access_token = access_token
        self.base_url = f"{graph_url.rstrip('/')}/{api_version}"
        self.chunk_size = chunk_size
        self.max_chunk_attempts = max_chunk_attempts
        self.poll_interval = poll_interval
        self.processing_timeout = processing_timeout
        self._sleep = sleep
        self._client = client
        self._retry = RetryManager(
            max_attempts=max_chunk_attempts,
            base_delay=retry_base_delay,
            retry_on=(TransferError,),
            sleep=sleep,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Control-plane call returning the decoded JSON body."""
        try:
            response = await self._get_client().request(
                method, self._url(path), headers=self._auth_headers, **kwargs
            )
        except httpx.RequestError as e:
            raise TransferError(f"{method} {path} failed: {e}") from e
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            error = (data.get("error") or {}) if isinstance(data, dict) else {}
            logger.error(f"Graph API error {response.status_code}: {error or response.text[:200]}")
            raise PublishRejectedError(
                error.get("message") or f"HTTP {response.status_code}",
                code=error.get("code"),
                error_type=error.get("type"),
            )
        return data if isinstance(data, dict) else {}

    # =========================================================================
    # CHUNKED RESUMABLE UPLOAD
    # =========================================================================

    async def start_upload(self, file_size: int) -> UploadSession:
        data = await self._request(
            "POST",
            f"{self.page_id}/videos",
            data={"upload_phase": "start", "file_size": str(file_size)},
        )
        session_id = data.get("upload_session_id")
        if not session_id:
            raise PublishRejectedError("start phase returned no upload_session_id")

        logger.info(f"📤 Upload session {session_id} started ({file_size / 1024 / 1024:.2f} MB)")
        return UploadSession(
            session_id=str(session_id),
            video_id=str(data["video_id"]) if data.get("video_id") else None,
            file_size=file_size,
            offset=int(data.get("start_offset", 0)),
        )

    async def _send_chunk(self, session_id: str, offset: int, chunk: bytes) -> Dict[str, Any]:
        """
        Send one chunk. Transport errors, 5xx and unreadable bodies raise
        TransferError and are retried; Graph 4xx errors are rejections.
        """
        try:
            response = await self._get_client().post(
                self._url(f"{self.page_id}/videos"),
                headers=self._auth_headers,
                data={
                    "upload_phase": "transfer",
                    "upload_session_id": session_id,
                    "start_offset": str(offset),
                },
                files={"video_file_chunk": ("chunk.mp4", chunk, "application/octet-stream")},
                timeout=UPLOAD_TIMEOUT,
            )
        except httpx.RequestError as e:
            raise TransferError(f"chunk at offset {offset}: {e}") from e

        if response.status_code >= 500:
            raise TransferError(f"chunk at offset {offset}: HTTP {response.status_code}")
        if response.is_error:
            # 4xx: raises PublishRejectedError
            return self._parse(response)

        try:
            data = response.json()
        except ValueError as e:
            raise TransferError(f"chunk at offset {offset}: unreadable response {response.text[:100]!r}") from e
        if not isinstance(data, dict):
            raise TransferError(f"chunk at offset {offset}: unexpected response {data!r}")
        return data

    async def transfer_chunks(self, session: UploadSession, video_path: Union[str, Path]) -> None:
        """
        Send the file chunk by chunk until the server has all of it.

        The next offset always comes from the server's ``start_offset``.
        """
        stalled = 0
        offset = session.offset

        with open(video_path, "rb") as f:
            while offset < session.file_size:
                f.seek(offset)
                chunk = f.read(self.chunk_size)
                if not chunk:
                    raise TransferError(f"Server requested offset {offset} past end of file")

                try:
                    data = await self._retry.execute_with_retry(
                        self._send_chunk,
                        f"Chunk upload at offset {offset}",
                        session.session_id,
                        offset,
                        chunk,
                    )
                except TransferError as e:
                    raise TransferError(
                        f"Chunk at offset {offset} failed after {self.max_chunk_attempts} attempts: {e}"
                    ) from e

                next_offset = int(data.get("start_offset", offset + len(chunk)))
                if next_offset <= offset:
                    stalled += 1
                    if stalled >= self.max_chunk_attempts:
                        raise TransferError(f"Upload stalled at offset {offset}")
                else:
                    stalled = 0

                progress = min(next_offset, session.file_size) / session.file_size * 100
                logger.debug(f"Chunk at {offset} accepted, next offset {next_offset} ({progress:.0f}%)")
                offset = next_offset
                session.offset = offset

    async def finish_upload(self, session: UploadSession) -> str:
        data = await self._request(
            "POST",
            f"{self.page_id}/videos",
            data={"upload_phase": "finish", "upload_session_id": session.session_id},
        )
        if data.get("success") is False:
            raise PublishRejectedError("finish phase returned success=false")

        video_id = data.get("video_id") or session.video_id
        if not video_id:
            raise PublishRejectedError("finish phase returned no video_id")
        return str(video_id)

    async def wait_for_processing(self, video_id: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Poll the video's status until it is ready.

        The deadline counts poll intervals slept, not wall-clock time.
        """
        timeout = self.processing_timeout if timeout is None else timeout
        waited = 0.0

        while True:
            data = await self._request("GET", video_id, params={"fields": "status"})
            status = (data.get("status") or {}).get("video_status")

            if status == "ready":
                logger.info(f"🎞️  Video {video_id} processed")
                return data
            if status == "error":
                raise ProcessingError(f"Video {video_id} processing failed: {data.get('status')}")
            if waited >= timeout:
                raise ProcessingTimeoutError(f"Video {video_id} still '{status}' after {waited:.0f}s")

            logger.debug(f"Video {video_id} status: {status}")
            await self._sleep(self.poll_interval)
            waited += self.poll_interval

    async def publish_video(self, video_id: str, title: str, description: str) -> str:
        data = await self._request(
            "POST",
            video_id,
            data={"title": title, "description": description, "published": "true"},
        )
        if data.get("success") is False:
            raise PublishRejectedError(f"publishing video {video_id} returned success=false")
        return str(data.get("id") or video_id)

    async def upload_video(
        self,
        video_path: Union[str, Path],
        title: str,
        description: str
    ) -> PublishResult:
        """Full chunked flow: start, transfer, finish, wait, publish."""
        file_size = Path(video_path).stat().st_size
        session = await self.start_upload(file_size)
        await self.transfer_chunks(session, video_path)
        video_id = await self.finish_upload(session)
        await self.wait_for_processing(video_id)
        post_id = await self.publish_video(video_id, title, description)

        logger.info(f"✅ Published video {video_id} to page {self.page_id}")
        return PublishResult(
            video_id=video_id,
            post_id=post_id,
            url=f"https://www.facebook.com/{self.page_id}/videos/{video_id}",
            mode="video",
        )

    # =========================================================================
    # REELS
    # =========================================================================

    async def start_reel(self) -> UploadSession:
        data = await self._request(
            "POST",
            f"{self.page_id}/video_reels",
            data={"upload_phase": "start"},
        )
        if not data.get("video_id") or not data.get("upload_url"):
            raise PublishRejectedError("reel start returned no video_id/upload_url")
        return UploadSession(video_id=str(data["video_id"]), upload_url=data["upload_url"])

    async def transfer_reel(self, session: UploadSession, video_path: Union[str, Path]) -> None:
        """Push the whole file to the session's upload URL. Not retried."""
        content = Path(video_path).read_bytes()
        session.file_size = len(content)

        try:
            response = await self._get_client().post(
                session.upload_url,
                content=content,
                headers={
                    "Authorization": f"OAuth {self.access_token}",
                    "offset": "0",
                    "file_size": str(len(content)),
                    "Content-Type": "application/octet-stream",
                },
                timeout=UPLOAD_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransferError(f"Reel upload for {session.video_id} failed: {e}") from e

        session.offset = len(content)
        logger.info(f"📤 Reel {session.video_id}: sent {len(content) / 1024 / 1024:.2f} MB")

    async def finish_reel(self, video_id: str, description: str, publish: bool = True) -> bool:
        data = await self._request(
            "POST",
            f"{self.page_id}/video_reels",
            data={
                "upload_phase": "finish",
                "video_id": video_id,
                "video_state": "PUBLISHED" if publish else "DRAFT",
                "description": description,
            },
        )
        if data.get("success") is not True:
            raise PublishRejectedError(f"reel {video_id} finish returned success=false")
        return True

    async def upload_reel(self, video_path: Union[str, Path], description: str) -> PublishResult:
        session = await self.start_reel()
        await self.transfer_reel(session, video_path)
        await self.finish_reel(session.video_id, description)

        logger.info(f"✅ Published reel {session.video_id} to page {self.page_id}")
        return PublishResult(
            video_id=session.video_id,
            post_id=session.video_id,
            url=f"https://www.facebook.com/reel/{session.video_id}",
            mode="reel",
        )

    # =========================================================================
    # ACCOUNT
    # =========================================================================

    async def validate_token(self) -> Dict[str, Any]:
        """Check the access token against /me."""
        try:
            data = await self._request("GET", "me", params={"fields": "id,name"})
        except PublishError as e:
            logger.error(f"❌ Facebook token validation failed: {e}")
            return {"valid": False, "error": str(e)}

        logger.info(f"✅ Facebook token valid for {data.get('name')} ({data.get('id')})")
        return {"valid": True, "data": data}
