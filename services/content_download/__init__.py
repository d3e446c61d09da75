"""
Video acquisition through fallback download services.
"""

from .acquisition import AcquisitionChain, MIN_VIDEO_BYTES
from .resolvers import (
    default_resolvers,
    resolve_via_snaptik,
    resolve_via_ssst,
    resolve_via_tikwm,
)

__all__ = [
    "AcquisitionChain",
    "MIN_VIDEO_BYTES",
    "default_resolvers",
    "resolve_via_tikwm",
    "resolve_via_snaptik",
    "resolve_via_ssst",
]
