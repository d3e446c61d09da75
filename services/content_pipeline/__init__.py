"""
Content Pipeline Services
Caption generation for republished videos
"""
from .caption_generator import CaptionGenerator, GeneratedContent
from .text_utils import (
    format_hashtags,
    format_number,
    truncate,
)

__all__ = [
    "CaptionGenerator",
    "GeneratedContent",
    "format_hashtags",
    "format_number",
    "truncate",
]
