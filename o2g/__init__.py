"""O2G - Publish Obsidian notes to Ghost."""

__version__ = "0.1.0"
__title__ = "O2G"
__license__ = "MIT"

from .converter import convert_markdown_to_html, replace_image_urls, strip_front_matter
from .metadata import resolve_metadata
from .models import (
    ConversionResult,
    ImageReference,
    PostMetadata,
    PostStatus,
    PublishState,
    ScheduledPastPolicy,
)

__all__ = [
    "convert_markdown_to_html",
    "replace_image_urls",
    "strip_front_matter",
    "resolve_metadata",
    "ConversionResult",
    "ImageReference",
    "PostMetadata",
    "PostStatus",
    "PublishState",
    "ScheduledPastPolicy",
    "__version__",
    "__title__",
]
