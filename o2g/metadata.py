"""Resolve Ghost post metadata from note front matter."""

import datetime
from typing import Any, List, Mapping, Optional

from .exceptions import MetadataError
from .logger import logger
from .models import PostMetadata, PostStatus, ScheduledPastPolicy
from .utils import format_time, to_utc_datetime


SCHEDULE_DATE_KEYS = ("publish_date", "date")


def resolve_title(front_matter: Mapping[str, Any], fallback_title: str) -> str:
    title = front_matter.get("title")
    if title is not None and str(title).strip():
        return str(title).strip()
    return fallback_title


def resolve_slug(front_matter: Mapping[str, Any]) -> Optional[str]:
    slug = front_matter.get("slug")
    if slug is None or not str(slug).strip():
        return None
    return str(slug).strip()


def resolve_tags(front_matter: Mapping[str, Any]) -> List[str]:
    """Tags from a YAML list or a comma separated string.

    Args:
        front_matter: Parsed front matter

    Returns:
        Trimmed, non-empty tag names in their original order
    """
    raw_tags = front_matter.get("tags")
    if isinstance(raw_tags, (list, tuple)):
        tags = [str(tag) for tag in raw_tags if tag is not None]
    elif isinstance(raw_tags, str):
        tags = raw_tags.split(",")
    else:
        return []
    return [tag.strip() for tag in tags if tag.strip()]


def resolve_schedule_date(front_matter: Mapping[str, Any]) -> Optional[datetime.datetime]:
    """First parseable value of ``publish_date`` then ``date``."""
    for key in SCHEDULE_DATE_KEYS:
        value = front_matter.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        parsed = to_utc_datetime(value)
        if parsed is None:
            logger.debug(f"Ignoring unparseable {key}: {value!r}")
        # publish_date shadows date even when it cannot be parsed
        return parsed
    return None


def resolve_metadata(
    front_matter: Optional[Mapping[str, Any]],
    fallback_title: str,
    default_status: PostStatus,
    now: datetime.datetime,
    scheduled_past_policy: ScheduledPastPolicy = ScheduledPastPolicy.KEEP,
) -> PostMetadata:
    """Compute title, slug, tags, status and publish date of a post.

    An explicit future date always schedules the post. A past date is kept
    only for published posts.

    Args:
        front_matter: Parsed front matter, may be None or not a mapping
        fallback_title: Title used when front matter has none (note file name)
        default_status: Status used when front matter has no valid status
        now: Reference time for scheduling decisions; naive means UTC
        scheduled_past_policy: Handling of ``scheduled`` without a future date

    Returns:
        Resolved post metadata

    Raises:
        MetadataError: If the policy is REJECT and the post is scheduled
            without a future date
    """
    if not isinstance(front_matter, Mapping):
        front_matter = {}

    now = to_utc_datetime(now)

    status = PostStatus.parse(front_matter.get("status")) or default_status
    published_at = None

    schedule_date = resolve_schedule_date(front_matter)
    if schedule_date is not None:
        if schedule_date > now:
            status = PostStatus.SCHEDULED
            published_at = format_time(schedule_date)
        elif status == PostStatus.PUBLISHED:
            published_at = format_time(schedule_date)

    if status == PostStatus.SCHEDULED and published_at is None:
        status = _apply_scheduled_past_policy(scheduled_past_policy, schedule_date)

    return PostMetadata(
        title=resolve_title(front_matter, fallback_title),
        slug=resolve_slug(front_matter),
        tags=resolve_tags(front_matter),
        status=status,
        published_at=published_at,
    )


def _apply_scheduled_past_policy(
    policy: ScheduledPastPolicy,
    schedule_date: Optional[datetime.datetime],
) -> PostStatus:
    if policy == ScheduledPastPolicy.PUBLISH_NOW:
        return PostStatus.PUBLISHED
    if policy == ScheduledPastPolicy.DRAFT:
        return PostStatus.DRAFT
    if policy == ScheduledPastPolicy.REJECT:
        if schedule_date is None:
            raise MetadataError("Post is scheduled but has no publish_date")
        raise MetadataError(
            f"Post is scheduled but publish_date is in the past: {format_time(schedule_date)}"
        )
    return PostStatus.SCHEDULED
