"""
Facebook Graph API publishing.
"""

from .facebook_publisher import CHUNK_SIZE, FacebookPublisher
from .models import PublishResult, UploadSession
from .retry import RetryManager, RetryPolicy

__all__ = [
    "CHUNK_SIZE",
    "FacebookPublisher",
    "PublishResult",
    "UploadSession",
    "RetryManager",
    "RetryPolicy",
]
