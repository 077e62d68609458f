"""Markdown to HTML rendering for Ghost posts."""

import re

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from pymdownx import emoji


EXTERNAL_LINK_PATTERN = re.compile(r"^(?:https?:)?//", re.IGNORECASE)

MARKDOWN_EXTENSIONS = [
    "markdown.extensions.tables",
    "markdown.extensions.fenced_code",
    "pymdownx.tasklist",
    "pymdownx.tilde",
    "pymdownx.emoji",
]

EXTENSION_CONFIGS = {
    # Only ~~text~~ (strikethrough), leave single ~ alone
    "pymdownx.tilde": {"subscript": False},
    # Emit the unicode character rather than a CDN <img>
    "pymdownx.emoji": {
        "emoji_index": emoji.gemoji,
        "emoji_generator": emoji.to_alt,
    },
}


class NewTabLinkTreeprocessor(Treeprocessor):
    """Open external links in a new browser tab."""

    def run(self, root):
        for element in root.iter("a"):
            href = element.get("href", "")
            if EXTERNAL_LINK_PATTERN.match(href):
                element.set("target", "_blank")
                element.set("rel", "noopener noreferrer")


class NewTabLinkExtension(Extension):
    """Register :class:`NewTabLinkTreeprocessor` after inline parsing."""

    def extendMarkdown(self, md):
        md.treeprocessors.register(NewTabLinkTreeprocessor(md), "new_tab_links", 5)


def create_markdown() -> markdown.Markdown:
    """Create a configured Markdown instance.

    A fresh instance per conversion keeps rendering free of shared state.
    Headings keep their levels (``#`` renders as ``<h1>``).
    """
    return markdown.Markdown(
        extensions=MARKDOWN_EXTENSIONS + [NewTabLinkExtension()],
        extension_configs=EXTENSION_CONFIGS,
        output_format="html",
    )


def render_html(markdown_text: str) -> str:
    """Render Markdown text to an HTML fragment.

    Args:
        markdown_text: Markdown with Obsidian syntax already normalized

    Returns:
        HTML fragment
    """
    return create_markdown().convert(markdown_text)
