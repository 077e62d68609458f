"""Convert Obsidian notes to Ghost-ready HTML.

Everything in this module is a pure function of its arguments: no I/O, no
shared mutable state. The publisher is responsible for reading notes,
uploading images and calling :func:`replace_image_urls` afterwards.
"""

import html
import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .logger import logger
from .models import ConversionResult, FrontMatter, ImageReference
from .renderer import render_html


IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "svg", "bmp"}

EXTERNAL_IMAGE_PREFIXES = ("http://", "https://", "data:")

FRONT_MATTER_PATTERN = re.compile(r"\A---\r?\n(?:[\s\S]*?\r?\n)?---(?:\r?\n|\Z)")
MARKDOWN_IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
EMBED_PATTERN = re.compile(r"!\[\[([^\]|]+)(?:\|([^\]]*))?\]\]")
WIKI_LINK_PATTERN = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")


def strip_front_matter(text: str) -> FrontMatter:
    """Remove a leading ``---`` delimited front matter block.

    A block without a closing ``---`` line is not front matter; the text is
    returned unchanged.

    Args:
        text: Raw note text

    Returns:
        Remaining content and the length of the removed block
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if not match:
        return FrontMatter(content=text, offset=0)
    return FrontMatter(content=text[match.end():], offset=match.end())


class LineIndex:
    """Line positions of a piece of content, computed once per conversion."""

    def __init__(self, content: str):
        self.content = content
        self.lines = content.split("\n")
        self.line_starts = [0]
        for match in re.finditer("\n", content):
            self.line_starts.append(match.end())
        self.first_content_line = next(
            (number for number, line in enumerate(self.lines) if line.strip()),
            None,
        )

    def line_of(self, offset: int) -> int:
        """0-based line number containing ``offset``."""
        return bisect_right(self.line_starts, offset) - 1

    def line_text(self, number: int) -> str:
        """Text of a line without its line ending."""
        return self.lines[number].rstrip("\r")

    def line_span(self, number: int) -> Tuple[int, int]:
        """Start and end offsets of a line, end including its newline."""
        start = self.line_starts[number]
        if number + 1 < len(self.line_starts):
            end = self.line_starts[number + 1]
        else:
            end = len(self.content)
        return start, end

    def is_first_content_line(self, offset: int) -> bool:
        if self.first_content_line is None:
            return False
        return self.line_of(offset) == self.first_content_line


def is_external_path(path: str) -> bool:
    return path.lower().startswith(EXTERNAL_IMAGE_PREFIXES)


def is_image_path(path: str) -> bool:
    """Check the extension after the last dot against IMAGE_EXTENSIONS."""
    if "." not in path:
        return False
    return path.rsplit(".", 1)[1].lower() in IMAGE_EXTENSIONS


def extract_images(
    content: str,
    line_index: LineIndex,
    warnings: Optional[List[str]] = None,
) -> List[ImageReference]:
    """Find local image mentions in note content.

    Standard ``![alt](path)`` images are collected first, then
    ``![[path|alt]]`` embeds with an image extension. External images
    (http, https, data URIs) are skipped.

    Args:
        content: Note content without front matter
        line_index: Line index built from the same content
        warnings: Optional list collecting embeds that are not images

    Returns:
        Image references in extraction order
    """
    images = []

    for match in MARKDOWN_IMAGE_PATTERN.finditer(content):
        path = match.group(2).strip()
        if is_external_path(path):
            continue
        images.append(
            ImageReference(
                original_syntax=match.group(0),
                path=path,
                alt=match.group(1),
                is_embed=False,
                is_first_line=line_index.is_first_content_line(match.start()),
            )
        )

    for match in EMBED_PATTERN.finditer(content):
        path = match.group(1).strip()
        if not is_image_path(path):
            if warnings is not None:
                warnings.append(f"Embedded content will not be uploaded: {path}")
            continue
        images.append(
            ImageReference(
                original_syntax=match.group(0),
                path=path,
                alt=(match.group(2) or "").strip(),
                is_embed=True,
                is_first_line=line_index.is_first_content_line(match.start()),
            )
        )

    return images


def select_featured_image(
    images: List[ImageReference],
) -> Tuple[Optional[ImageReference], List[ImageReference]]:
    """Split images into the featured image and content images.

    The featured image is the first reference on the first content line.
    Other first-line references stay content images.
    """
    featured = next((image for image in images if image.is_first_line), None)
    if featured is None:
        return None, list(images)
    remaining = [image for image in images if image is not featured]
    return featured, remaining


@dataclass(frozen=True)
class TransformContext:
    """Inputs shared by the transform stages of one conversion."""

    line_index: LineIndex
    featured_image: Optional[ImageReference] = None


def remove_featured_line(content: str, context: TransformContext) -> str:
    """Delete the first content line if it holds the featured image."""
    featured = context.featured_image
    line_index = context.line_index
    if featured is None or line_index.first_content_line is None:
        return content

    line_number = line_index.first_content_line
    if featured.original_syntax not in line_index.line_text(line_number):
        return content

    start, end = line_index.line_span(line_number)
    return content[:start] + content[end:]


def rewrite_embeds(content: str, context: TransformContext = None) -> str:
    """``![[path|alt]]`` -> ``![alt](path)``, whatever the extension."""

    def _replace(match):
        path = match.group(1).strip()
        alt = (match.group(2) or "").strip()
        return f"![{alt}]({path})"

    return EMBED_PATTERN.sub(_replace, content)


def flatten_wiki_links(content: str, context: TransformContext = None) -> str:
    """``[[target|display]]`` -> ``display``, ``[[target]]`` -> ``target``."""
    return WIKI_LINK_PATTERN.sub(
        lambda match: match.group(2) or match.group(1), content
    )


# Order matters: rewrite_embeds must run before flatten_wiki_links, otherwise
# the inner [[...]] of an embed is flattened and the embed is lost.
TRANSFORM_STAGES: Tuple[Tuple[str, Callable[[str, TransformContext], str]], ...] = (
    ("remove_featured_line", remove_featured_line),
    ("rewrite_embeds", rewrite_embeds),
    ("flatten_wiki_links", flatten_wiki_links),
)


def apply_transforms(content: str, context: TransformContext) -> str:
    """Run every transform stage in order."""
    for name, stage in TRANSFORM_STAGES:
        content = stage(content, context)
        logger.debug(f"Applied transform stage: {name}")
    return content


def prepare_markdown(text: str) -> Tuple[str, ConversionResult]:
    """Extract images and rewrite Obsidian syntax, without rendering.

    Args:
        text: Raw note text, front matter included

    Returns:
        Rewritten Markdown and a result whose ``html`` is still empty
    """
    content = strip_front_matter(text).content
    line_index = LineIndex(content)

    warnings: List[str] = []
    images = extract_images(content, line_index, warnings)
    featured, content_images = select_featured_image(images)

    context = TransformContext(line_index=line_index, featured_image=featured)
    processed = apply_transforms(content, context)

    result = ConversionResult(
        html="",
        warnings=warnings,
        images=content_images,
        featured_image=featured,
    )
    return processed, result


def convert_markdown_to_html(text: str) -> ConversionResult:
    """Convert an Obsidian note to HTML for Ghost.

    Args:
        text: Raw note text, front matter included

    Returns:
        HTML, warnings, content images and the featured image
    """
    processed, result = prepare_markdown(text)
    result.html = render_html(processed)
    logger.debug(
        f"Converted note: {len(result.images)} content images, "
        f"featured image: {result.featured_image.path if result.featured_image else None}"
    )
    return result


def replace_image_urls(html_text: str, url_map: Dict[str, str]) -> str:
    """Point ``src`` attributes at uploaded image URLs.

    Args:
        html_text: Rendered HTML
        url_map: Local image path -> remote URL

    Returns:
        HTML with every mapped ``src="path"`` / ``src='path'`` replaced
    """
    for path, url in url_map.items():
        # The renderer escapes "&" in attribute values
        candidates = {re.escape(path), re.escape(html.escape(path, quote=False))}
        pattern = re.compile(
            r"""src=(["'])(?:""" + "|".join(sorted(candidates)) + r")\1"
        )
        html_text = pattern.sub(
            lambda match, url=url: f"src={match.group(1)}{url}{match.group(1)}",
            html_text,
        )
    return html_text
