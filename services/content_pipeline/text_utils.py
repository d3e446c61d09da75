"""
Text helpers for post captions.
"""
from typing import List, Optional


def format_hashtags(hashtags: List[str], max_count: Optional[int] = None) -> str:
    """
    Format hashtags for inclusion in a post.

    Args:
        hashtags: List of hashtags (with or without #)
        max_count: Maximum number of hashtags to include

    Returns:
        Space separated hashtag string
    """
    formatted = [h if h.startswith("#") else f"#{h}" for h in (h.strip() for h in hashtags) if h]
    if max_count:
        formatted = formatted[:max_count]
    return " ".join(formatted)


def truncate(text: str, max_length: int, suffix: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[:max(0, max_length - len(suffix))] + suffix


def format_number(num: int) -> str:
    """1500000 -> 1.5M, 2500 -> 2.5K"""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)
