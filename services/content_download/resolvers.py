"""
TikTok Download Resolvers
=========================
Each resolver turns a public TikTok URL into a direct, downloadable media
URL, or returns None when the service has nothing usable. Transport and
HTTP errors propagate so the acquisition chain can log them and move on.

Order matters: TikWM first (HD capable), then SnapTik, then SSST.
"""
import re
from functools import partial
from typing import Awaitable, Callable, List, Optional

import httpx

Resolver = Callable[[str], Awaitable[Optional[str]]]

TIKWM_API = "https://www.tikwm.com/api/"
TIKWM_BASE = "https://www.tikwm.com"
SNAPTIK_API = "https://snaptik.app/abc2.php"
SSST_API = "https://api.douyin.wtf/api"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ERROR_MARKER = "error"
SNAPTIK_LINK = re.compile(r'href="(https://[^"]+\.mp4[^"]*)"')


async def resolve_via_tikwm(source_url: str, client: httpx.AsyncClient) -> Optional[str]:
    """Prefer the HD stream unless TikWM flags it as broken."""
    response = await client.post(
        TIKWM_API,
        data={"url": source_url, "hd": "1"},
        headers={"User-Agent": USER_AGENT},
        timeout=30.0,
    )
    response.raise_for_status()

    data = response.json().get("data") or {}
    hdplay = data.get("hdplay")
    video_url = hdplay if hdplay and ERROR_MARKER not in hdplay else data.get("play")
    if video_url and video_url.startswith("/"):
        video_url = TIKWM_BASE + video_url
    return video_url or None


async def resolve_via_snaptik(source_url: str, client: httpx.AsyncClient) -> Optional[str]:
    response = await client.post(
        SNAPTIK_API,
        data={"url": source_url},
        headers={"User-Agent": USER_AGENT},
        timeout=30.0,
    )
    response.raise_for_status()

    match = SNAPTIK_LINK.search(response.text)
    if not match:
        return None
    return match.group(1).replace("\\u0026", "&")


async def resolve_via_ssst(source_url: str, client: httpx.AsyncClient) -> Optional[str]:
    response = await client.get(
        SSST_API,
        params={"url": source_url},
        headers={"User-Agent": USER_AGENT},
        timeout=30.0,
    )
    response.raise_for_status()
    return response.json().get("nwm_video_url") or None


def default_resolvers(client: httpx.AsyncClient) -> List[Resolver]:
    """The standard fallback order, bound to one shared HTTP client."""
    return [
        partial(resolve_via_tikwm, client=client),
        partial(resolve_via_snaptik, client=client),
        partial(resolve_via_ssst, client=client),
    ]


def resolver_name(resolver: Resolver) -> str:
    func = getattr(resolver, "func", resolver)
    return getattr(func, "__name__", repr(resolver))
