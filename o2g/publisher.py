"""Publish Obsidian notes to Ghost."""

import datetime
import shutil
import urllib.parse
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import frontmatter
import yaml

from .config import PublishConfig
from .converter import convert_markdown_to_html, replace_image_urls, strip_front_matter
from .exceptions import O2GError, PublishError
from .ghost_api import GhostAPI
from .logger import logger
from .metadata import resolve_metadata
from .models import (
    ImageReference,
    PreparedPost,
    PublishResult,
    PublishState,
)
from .utils import find_vault_root, slugify_filename, unique_path


TRUTHY_STRINGS = {"true", "yes", "on", "1"}


def read_front_matter(text: str) -> Dict[str, Any]:
    """Parse the YAML front matter of a note.

    Only the block the converter strips is parsed, so metadata and body
    always agree on where the front matter ends. Malformed YAML or a
    non-mapping block counts as no front matter.

    Args:
        text: Raw note text

    Returns:
        Front matter mapping, empty if absent or unreadable
    """
    block = strip_front_matter(text)
    if not block.present:
        return {}
    try:
        post = frontmatter.loads(text[:block.offset])
    except (yaml.YAMLError, ValueError) as e:
        logger.warning(f"Ignoring malformed front matter: {e}")
        return {}
    return dict(post.metadata) if isinstance(post.metadata, dict) else {}


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def build_post_payload(
    prepared: PreparedPost,
    url_map: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Assemble the Ghost post fields for a prepared note.

    Args:
        prepared: Converted note and resolved metadata
        url_map: Local image path -> uploaded URL

    Returns:
        Post dictionary for :meth:`GhostAPI.create_post`
    """
    url_map = url_map or {}
    post = prepared.metadata.to_dict()
    post["html"] = replace_image_urls(prepared.conversion.html, url_map)
    post["featured"] = prepared.featured

    featured_image = prepared.conversion.featured_image
    if featured_image is not None and featured_image.path in url_map:
        post["feature_image"] = url_map[featured_image.path]
    return post


class ImageResolver:
    """Locate image files referenced from a note."""

    def __init__(self, note_path: Path, vault_path: Optional[Path] = None):
        self.note_folder = note_path.parent
        self.vault_path = vault_path

    def resolve(self, image: ImageReference) -> Optional[Path]:
        """Resolve an image path.

        Tries the vault root, then the note's folder, then (for Obsidian's
        shortest-path embeds) any file of that name inside the vault.

        Args:
            image: Image reference from the converter

        Returns:
            Existing file path or None if not found
        """
        uri_path = urllib.parse.unquote(image.path.split("#")[0]).strip()
        if not uri_path:
            return None

        candidates = []
        if self.vault_path:
            candidates.append(self.vault_path / uri_path.lstrip("/"))
        candidates.append(self.note_folder / uri_path)
        for candidate in candidates:
            if candidate.is_file():
                return candidate

        if self.vault_path:
            filename = Path(uri_path).name
            for candidate in sorted(self.vault_path.rglob(filename)):
                if candidate.is_file() and ".obsidian" not in candidate.parts:
                    return candidate
        return None


class NotePublisher:
    """Converts a note, uploads its images and creates the Ghost post."""

    def __init__(
        self,
        config: PublishConfig,
        api: Optional[GhostAPI] = None,
        vault_path: Optional[Path] = None,
        on_state: Optional[Callable[[PublishState], None]] = None,
    ):
        """Initialize publisher.

        Args:
            config: Publishing configuration
            api: Ghost client, created from config when omitted
            vault_path: Obsidian vault root, detected from the note when omitted
            on_state: Called with every state change
        """
        self.config = config
        self._api = api
        self.vault_path = vault_path
        self.on_state = on_state
        self.state = PublishState.IDLE

    @property
    def api(self) -> GhostAPI:
        if self._api is None:
            self.config.require_credentials()
            self._api = GhostAPI(
                self.config.ghost_url,
                self.config.api_key,
                timeout=self.config.request_timeout,
            )
        return self._api

    def _set_state(self, state: PublishState) -> None:
        self.state = state
        logger.debug(f"Publish state: {state.value}")
        if self.on_state:
            self.on_state(state)

    def _vault_for(self, note_path: Path) -> Optional[Path]:
        return self.vault_path or find_vault_root(note_path)

    def prepare(
        self,
        note_path: Path,
        now: Optional[datetime.datetime] = None,
    ) -> PreparedPost:
        """Read, convert and resolve metadata for a note, without network calls.

        Args:
            note_path: Path to the Markdown note
            now: Reference time for scheduling, defaults to current UTC time

        Returns:
            Prepared post

        Raises:
            PublishError: If the note cannot be read
            MetadataError: If scheduling is rejected by the configured policy
        """
        note_path = Path(note_path)
        if note_path.suffix.lower() != ".md":
            raise PublishError(f"Not a Markdown note: {note_path}", path=str(note_path))
        try:
            text = note_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PublishError(f"Could not read note {note_path}: {e}", path=str(note_path))

        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)

        front_matter = read_front_matter(text)
        conversion = convert_markdown_to_html(text)
        metadata = resolve_metadata(
            front_matter,
            fallback_title=note_path.stem,
            default_status=self.config.default_status,
            now=now,
            scheduled_past_policy=self.config.scheduled_past_policy,
        )
        return PreparedPost(
            note_path=note_path,
            metadata=metadata,
            conversion=conversion,
            featured=is_truthy(front_matter.get("featured", False)),
        )

    def resolve_images(self, prepared: PreparedPost) -> Dict[str, Path]:
        """Map every local image path of a prepared post to its file.

        Raises:
            PublishError: If any image file is missing
        """
        resolver = ImageResolver(prepared.note_path, self._vault_for(prepared.note_path))
        files: Dict[str, Path] = {}
        missing: List[str] = []
        for image in prepared.conversion.all_images:
            if image.path in files:
                continue
            file_path = resolver.resolve(image)
            if file_path is None:
                missing.append(image.path)
            else:
                files[image.path] = file_path

        if missing:
            raise PublishError(
                f"Image not found: {', '.join(missing)}", path=missing[0]
            )
        return files

    def upload_images(self, files: Dict[str, Path]) -> Dict[str, str]:
        """Upload image files and return local path -> remote URL.

        Stops at the first failure; nothing is retried.
        """
        api = self.api
        url_map = {}
        for image_path, file_path in files.items():
            filename = slugify_filename(file_path.name)
            logger.info(f"Uploading image: {image_path}")
            try:
                data = file_path.read_bytes()
            except OSError as e:
                raise PublishError(f"Could not read image {file_path}: {e}", path=image_path)
            try:
                url_map[image_path] = api.upload_image(filename, data)
            except O2GError as e:
                raise PublishError(f"Failed to upload image {image_path}: {e}", path=image_path) from e
        return url_map

    def publish(
        self,
        note_path: Path,
        now: Optional[datetime.datetime] = None,
        archive: bool = True,
    ) -> PublishResult:
        """Publish a note to Ghost.

        Args:
            note_path: Path to the Markdown note
            now: Reference time for scheduling, defaults to current UTC time
            archive: Move the note to the archive folder after success

        Returns:
            Publish result with post URL, uploaded images and any errors
        """
        result = PublishResult()
        note_path = Path(note_path)
        self._set_state(PublishState.IDLE)

        try:
            prepared = self.prepare(note_path, now)
            result.warnings.extend(prepared.conversion.warnings)
            files = self.resolve_images(prepared)

            self._set_state(PublishState.UPLOADING)
            result.uploaded_images = self.upload_images(files)

            self._set_state(PublishState.SUBMITTING)
            post = self.api.create_post(build_post_payload(prepared, result.uploaded_images))
            result.post_id = post.get("id")
            result.post_url = post.get("url")
            logger.info(f"Post created: {result.post_url or result.post_id}")

        except O2GError as e:
            error_msg = f"Failed to publish {note_path}: {e}"
            logger.error(error_msg)
            result.errors.append(error_msg)
            self._set_state(PublishState.ERROR)
            return result

        self._set_state(PublishState.DONE)

        if archive and self.config.archive_folder:
            try:
                result.archived_to = self.archive_note(note_path)
            except OSError as e:
                warning_msg = f"Failed to archive note: {e}"
                logger.warning(warning_msg)
                result.warnings.append(warning_msg)

        return result

    def archive_note(self, note_path: Path) -> Path:
        """Move a note into the configured archive folder.

        The folder is relative to the vault root (or the note's folder outside
        a vault) and is created if missing. A name collision gets an epoch
        millisecond suffix.

        Returns:
            New path of the note
        """
        base = self._vault_for(note_path) or note_path.parent
        archive_dir = base / self.config.archive_folder
        archive_dir.mkdir(parents=True, exist_ok=True)

        dest_path = unique_path(archive_dir / note_path.name)
        shutil.move(str(note_path), str(dest_path))
        logger.info(f"Note archived to {archive_dir}")
        return dest_path
