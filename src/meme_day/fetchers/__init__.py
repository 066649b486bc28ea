"""Fetchers package: transport fallback, feed selection and image resolution."""

from .fetch_resolver import FetchResolver
from .feed_resolver import FeedResolver, extract_original_link, is_absolute_url, resolve_top_item
from .image_resolver import ImageResolver, pollinations_builder, loremflickr_builder, resolve_image_url

__all__ = [
    'FetchResolver',
    'FeedResolver',
    'extract_original_link',
    'is_absolute_url',
    'resolve_top_item',
    'ImageResolver',
    'pollinations_builder',
    'loremflickr_builder',
    'resolve_image_url',
]
