"""View-count sources and post URL parsing."""

from .base import ViewCountSource
from .urls import extract_post_id
from .x_api import XApiClient

__all__ = [
    "ViewCountSource",
    "XApiClient",
    "extract_post_id",
]
