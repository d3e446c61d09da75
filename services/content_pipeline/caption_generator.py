"""
Caption Generator
=================
Writes a fresh Facebook title and description for a scraped TikTok video
using OpenAI chat completions with JSON output.

generate() never raises: any failure, or a missing API key, yields a
fallback template picked deterministically from the video id.
"""
import hashlib
import json
from typing import List, Optional

from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from services.scrapers.models import CandidateVideo

from .text_utils import format_hashtags, format_number

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 2000
FOLLOW_FOOTER = "📱 Follow for more amazing content!"

FALLBACK_TEMPLATES = [
    ("You Won't Believe What Happens Next! 🔥", "This is absolutely incredible! Watch till the end! 👀"),
    ("This Made My Entire Day! 😂", "Tag someone who needs to see this! 💯"),
    ("Wait For It... 😱", "The ending is EVERYTHING! Share with your friends! 🙌"),
    ("POV: When Things Get Real 🎬", "Can you relate? Drop a comment below! 👇"),
    ("This Is Going Viral For A Reason! 🚀", "Double tap if you agree! Share for more! ❤️"),
]
FALLBACK_HASHTAGS = ["viral", "trending", "foryou", "fyp", "explore", "follow"]

SYSTEM_PROMPT = """You are a social media content expert. Create engaging, original content for a Facebook video post based on a TikTok video.

REQUIREMENTS:
1. A NEW, ORIGINAL title (max 100 characters), catchy and curiosity-inducing. Do not copy the original.
2. A NEW, ORIGINAL description (max 500 characters), engaging, with a call-to-action like "Follow for more!" or "Share if you agree!"
3. 5-7 relevant Facebook hashtags
4. English, appealing to a broad audience

Return JSON:
{
    "title": "...",
    "description": "...",
    "hashtags": ["hashtag1", "hashtag2", "hashtag3", "hashtag4", "hashtag5"]
}"""


class GeneratedContent(BaseModel):
    """Title and description ready to post."""
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    description: str = Field(..., max_length=MAX_DESCRIPTION_LENGTH)
    hashtags: List[str] = Field(default_factory=list)
    fallback: bool = False


def build_description(body: str, hashtags: List[str]) -> str:
    parts = [body.strip(), format_hashtags(hashtags), FOLLOW_FOOTER]
    return "\n\n".join(part for part in parts if part)[:MAX_DESCRIPTION_LENGTH]


def category_hints(video: CandidateVideo) -> str:
    hints = []
    if video.music:
        hints.append(f"Music: {video.music}")
    if video.hashtags:
        hints.append(f"Tags: {', '.join(video.hashtags[:3])}")
    return "; ".join(hints) or "General entertainment"


class CaptionGenerator:
    """OpenAI-backed caption writer with template fallback."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        client: Optional[AsyncOpenAI] = None
    ):
        self.model = model
        self.api_key = api_key
        self._client = client

    def _get_client(self) -> Optional[AsyncOpenAI]:
        if self._client is None and self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def generate(self, video: CandidateVideo) -> GeneratedContent:
        client = self._get_client()
        if client is None:
            logger.info(f"No OpenAI key configured, using fallback caption for {video.id}")
            return self.fallback(video)

        logger.info(f"🤖 Generating caption for video {video.id}")
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._describe(video)},
                ],
                temperature=0.8,
                response_format={"type": "json_object"}
            )
            generated = json.loads(response.choices[0].message.content)

            title = (generated.get("title") or "").strip()
            body = (generated.get("description") or "").strip()
            if not title or not body:
                raise ValueError("Missing title or description in model response")

            hashtags = [str(h).lstrip("#") for h in generated.get("hashtags") or []]
            return GeneratedContent(
                title=title[:MAX_TITLE_LENGTH],
                description=build_description(body, hashtags),
                hashtags=hashtags,
            )

        except Exception as e:
            logger.error(f"Caption generation failed for {video.id}: {e}")
            return self.fallback(video)

    @staticmethod
    def _describe(video: CandidateVideo) -> str:
        return (
            "ORIGINAL VIDEO DATA:\n"
            f"- Description: \"{video.text or 'No description'}\"\n"
            f"- Author: {video.author or 'Unknown'}\n"
            f"- Hashtags: {', '.join(video.hashtags) or 'None'}\n"
            f"- Views: {format_number(video.views)}\n"
            f"- Category hints from content: {category_hints(video)}"
        )

    @staticmethod
    def fallback(video: CandidateVideo) -> GeneratedContent:
        index = int(hashlib.md5(video.id.encode("utf-8")).hexdigest(), 16) % len(FALLBACK_TEMPLATES)
        title, body = FALLBACK_TEMPLATES[index]
        return GeneratedContent(
            title=title,
            description=build_description(body, FALLBACK_HASHTAGS),
            hashtags=list(FALLBACK_HASHTAGS),
            fallback=True,
        )
