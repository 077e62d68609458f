"""Command-line interface for O2G."""

import json
import sys
from pathlib import Path
from typing import Optional

import fire

from . import __title__, __version__
from .config import load_config
from .exceptions import O2GError
from .ghost_api import GhostAPI
from .logger import setup_logger
from .models import PostStatus, PublishState
from .publisher import NotePublisher, build_post_payload


STATUS_DESCRIPTIONS = {
    PostStatus.DRAFT: "Draft (not visible to readers)",
    PostStatus.PUBLISHED: "Published (visible immediately)",
    PostStatus.SCHEDULED: "Scheduled",
}


def _setup(verbose: bool) -> None:
    setup_logger(level="DEBUG" if verbose else "INFO")


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _print_progress(state: PublishState) -> None:
    if state == PublishState.UPLOADING:
        print("Uploading images...")
    elif state == PublishState.SUBMITTING:
        print("Publishing...")


def publish(note: str, config: Optional[str] = None, archive: bool = True, verbose: bool = False):
    """Publish a note to Ghost.

    Args:
        note: Path to the Markdown note
        config: Settings file (TOML or YAML), searched for when omitted
        archive: Move the note to archive_folder after publishing
        verbose: Enable debug logging

    Example:
        - `python -m o2g publish "vault/Drafts/My post.md"`
        - `python -m o2g publish "vault/Drafts/My post.md" --config=o2g.toml --noarchive`
    """
    _setup(verbose)
    try:
        publish_config = load_config(config)
        publish_config.require_credentials()
    except O2GError as e:
        _fail(str(e))

    publisher = NotePublisher(publish_config, on_state=_print_progress)
    result = publisher.publish(Path(note), archive=archive)

    for warning in result.warnings:
        print(f"Warning: {warning}")
    if not result.success:
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    print(f"Post published: {result.post_url or result.post_id}")
    if result.uploaded_images:
        print(f"{len(result.uploaded_images)} images uploaded")
    if result.archived_to:
        print(f"Note archived to: {result.archived_to}")


def preview(note: str, config: Optional[str] = None, verbose: bool = False):
    """Show what would be published, without contacting Ghost.

    Args:
        note: Path to the Markdown note
        config: Settings file (TOML or YAML), searched for when omitted
        verbose: Enable debug logging
    """
    _setup(verbose)
    try:
        publisher = NotePublisher(load_config(config))
        prepared = publisher.prepare(Path(note))
    except O2GError as e:
        _fail(str(e))

    metadata = prepared.metadata
    print(f"Title: {metadata.title}")
    if metadata.slug:
        print(f"Slug: {metadata.slug}")
    if metadata.tags:
        print(f"Tags: {', '.join(metadata.tags)}")
    print(f"Status: {STATUS_DESCRIPTIONS[metadata.status]}")
    if metadata.published_at:
        label = "Scheduled for" if metadata.status == PostStatus.SCHEDULED else "Published at"
        print(f"{label}: {metadata.published_at}")

    conversion = prepared.conversion
    if conversion.featured_image:
        print(f"Featured image: {conversion.featured_image.path}")
    for image in conversion.images:
        print(f"Image: {image.path}")
    for warning in conversion.warnings:
        print(f"Warning: {warning}")

    print()
    print(json.dumps(build_post_payload(prepared), indent=2, ensure_ascii=False))


def check(config: Optional[str] = None, verbose: bool = False):
    """Test the connection to Ghost.

    Args:
        config: Settings file (TOML or YAML), searched for when omitted
        verbose: Enable debug logging
    """
    _setup(verbose)
    try:
        publish_config = load_config(config)
        publish_config.require_credentials()
        api = GhostAPI(
            publish_config.ghost_url,
            publish_config.api_key,
            timeout=publish_config.request_timeout,
        )
        site_name = api.test_connection()
    except O2GError as e:
        _fail(f"Connection failed: {e}")

    print(f"Connected successfully to: {site_name}")


def version():
    """Print the version."""
    print(f"{__title__} {__version__}")


COMMANDS = {
    "publish": publish,
    "preview": preview,
    "check": check,
    "version": version,
}


def main() -> None:
    """Main entry point for the CLI."""
    fire.Fire(COMMANDS, name="o2g")


if __name__ == "__main__":
    main()
