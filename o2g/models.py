"""Data models for O2G."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class PostStatus(Enum):
    """Ghost post statuses."""
    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"

    @classmethod
    def parse(cls, value: Any) -> Optional["PostStatus"]:
        """Return the status named by ``value``, or None if it names none."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ScheduledPastPolicy(Enum):
    """What to do with ``status: scheduled`` when no future date is given."""
    KEEP = "keep"
    PUBLISH_NOW = "publish_now"
    DRAFT = "draft"
    REJECT = "reject"


class PublishState(Enum):
    """Progress of a single publish attempt."""
    IDLE = "idle"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class FrontMatter:
    """Note content with its leading front matter block removed."""

    content: str
    offset: int = 0

    @property
    def present(self) -> bool:
        return self.offset > 0


@dataclass(frozen=True)
class ImageReference:
    """One local image mention found in a note."""

    original_syntax: str
    path: str
    alt: str = ""
    is_embed: bool = False
    is_first_line: bool = False


@dataclass
class ConversionResult:
    """Result of converting a note body to HTML."""

    html: str
    warnings: List[str] = field(default_factory=list)
    images: List[ImageReference] = field(default_factory=list)
    featured_image: Optional[ImageReference] = None

    @property
    def all_images(self) -> List[ImageReference]:
        """Featured image first, then content images."""
        if self.featured_image is None:
            return list(self.images)
        return [self.featured_image] + self.images


@dataclass
class PostMetadata:
    """Publication intent resolved from front matter."""

    title: str
    slug: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    published_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the post fields understood by the Ghost Admin API."""
        data: Dict[str, Any] = {
            "title": self.title,
            "status": self.status.value,
        }
        if self.slug:
            data["slug"] = self.slug
        if self.tags:
            data["tags"] = [{"name": tag} for tag in self.tags]
        if self.published_at:
            data["published_at"] = self.published_at
        return data


@dataclass
class PreparedPost:
    """Everything needed to publish a note, before any network call."""

    note_path: Path
    metadata: PostMetadata
    conversion: ConversionResult
    featured: bool = False


@dataclass
class PublishResult:
    """Outcome of a publish attempt."""

    post_id: Optional[str] = None
    post_url: Optional[str] = None
    uploaded_images: Dict[str, str] = field(default_factory=dict)
    archived_to: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if the post was created."""
        return len(self.errors) == 0 and self.post_id is not None
