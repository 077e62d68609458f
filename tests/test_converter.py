"""Unit tests for note to HTML conversion."""

import re

import pytest

from o2g.converter import (
    LineIndex,
    TRANSFORM_STAGES,
    TransformContext,
    convert_markdown_to_html,
    extract_images,
    flatten_wiki_links,
    is_image_path,
    prepare_markdown,
    remove_featured_line,
    replace_image_urls,
    rewrite_embeds,
    select_featured_image,
    strip_front_matter,
)
from o2g.models import ImageReference


SCENARIO_NOTE = "---\ntitle: Hi\n---\n![cover](cover.png)\n\nBody ![[inline.png]] text."


def extract(content):
    return extract_images(content, LineIndex(content))


class TestStripFrontMatter:
    """Tests for front matter removal."""

    def test_no_front_matter_is_noop(self):
        text = "# Title\n\nSome text\n---\nmore"
        result = strip_front_matter(text)
        assert result.content == text
        assert result.offset == 0
        assert not result.present

    def test_well_formed_block_removed_exactly(self):
        block = "---\ntitle: Hi\ntags: [a, b]\n---\n"
        body = "First line\n\nSecond"
        result = strip_front_matter(block + body)
        assert result.content == body
        assert result.offset == len(block)
        assert result.present

    def test_block_without_trailing_newline(self):
        result = strip_front_matter("---\ntitle: Hi\n---")
        assert result.content == ""
        assert result.offset == len("---\ntitle: Hi\n---")

    def test_empty_block(self):
        assert strip_front_matter("---\n---\nbody").content == "body"

    def test_crlf_line_endings(self):
        result = strip_front_matter("---\r\ntitle: Hi\r\n---\r\nbody")
        assert result.content == "body"

    def test_missing_closing_delimiter_passes_through(self):
        text = "---\ntitle: Hi\nbody without end"
        result = strip_front_matter(text)
        assert result.content == text
        assert result.offset == 0

    def test_closing_delimiter_must_be_whole_line(self):
        text = "---\ntitle: Hi\n---not a delimiter\nbody"
        assert strip_front_matter(text).content == text

    def test_delimiter_must_start_at_position_zero(self):
        text = "\n---\ntitle: Hi\n---\nbody"
        assert strip_front_matter(text).offset == 0


class TestLineIndex:
    """Tests for line position lookups."""

    def test_first_content_line_skips_blank_lines(self):
        index = LineIndex("\n  \n\t\nfirst\nsecond")
        assert index.first_content_line == 3

    def test_no_content_lines(self):
        index = LineIndex("\n   \n")
        assert index.first_content_line is None
        assert not index.is_first_content_line(0)

    def test_line_of_offset(self):
        content = "ab\ncd\nef"
        index = LineIndex(content)
        assert index.line_of(0) == 0
        assert index.line_of(content.index("c")) == 1
        assert index.line_of(content.index("f")) == 2

    def test_line_text_strips_carriage_return(self):
        index = LineIndex("one\r\ntwo")
        assert index.line_text(0) == "one"
        assert index.first_content_line == 0

    def test_line_span_includes_newline(self):
        index = LineIndex("one\ntwo\nthree")
        assert index.line_span(1) == (4, 8)
        assert index.line_span(2) == (8, 13)


class TestExtractImages:
    """Tests for image extraction and classification."""

    def test_standard_image(self):
        images = extract("Text\n![alt text](images/a.png)")
        assert images == [
            ImageReference(
                original_syntax="![alt text](images/a.png)",
                path="images/a.png",
                alt="alt text",
                is_embed=False,
                is_first_line=False,
            )
        ]

    @pytest.mark.parametrize("path", [
        "http://example.com/a.png",
        "https://example.com/a.png",
        "data:image/png;base64,AAAA",
    ])
    def test_external_images_skipped(self, path):
        assert extract(f"![x]({path})") == []

    def test_embed_image_with_alt(self):
        images = extract("Intro\n![[photo.JPG|A photo]]")
        assert len(images) == 1
        assert images[0].path == "photo.JPG"
        assert images[0].alt == "A photo"
        assert images[0].is_embed is True

    def test_embed_without_alt_has_empty_alt(self):
        assert extract("![[a.webp]]")[0].alt == ""

    @pytest.mark.parametrize("path", ["Other note", "doc.pdf", "clip.mp4", "archive.tar.gz"])
    def test_non_image_embeds_ignored(self, path):
        assert extract(f"![[{path}]]") == []

    def test_non_image_embed_warning(self):
        warnings = []
        content = "![[doc.pdf]]"
        extract_images(content, LineIndex(content), warnings)
        assert warnings == ["Embedded content will not be uploaded: doc.pdf"]

    def test_standard_pass_precedes_embed_pass(self):
        images = extract("![[e.png]] ![s](s.png)")
        assert [image.path for image in images] == ["s.png", "e.png"]

    def test_first_line_flag(self):
        images = extract("\n\n![a](a.png)\n![b](b.png)")
        assert [image.is_first_line for image in images] == [True, False]

    @pytest.mark.parametrize("path,expected", [
        ("a.PNG", True),
        ("dir.v2/photo.jpeg", True),
        ("icon.svg", True),
        ("scan.bmp", True),
        ("anim.gif", True),
        ("notes", False),
        ("a.png.md", False),
    ])
    def test_is_image_path(self, path, expected):
        assert is_image_path(path) is expected


class TestSelectFeaturedImage:
    """Tests for featured image selection."""

    def test_no_first_line_image(self):
        images = extract("Intro\n![c](c.png)")
        featured, remaining = select_featured_image(images)
        assert featured is None
        assert remaining == images

    def test_only_first_first_line_image_is_featured(self):
        images = extract("![a](a.png) ![b](b.png)\n![c](c.png)")
        featured, remaining = select_featured_image(images)
        assert featured.path == "a.png"
        assert [image.path for image in remaining] == ["b.png", "c.png"]

    def test_duplicate_mention_stays_content_image(self):
        images = extract("![a](a.png) ![a](a.png)")
        featured, remaining = select_featured_image(images)
        assert featured is images[0]
        assert remaining == [images[1]]


class TestTransforms:
    """Tests for the Markdown rewriting stages."""

    def test_embed_rewrite(self):
        assert rewrite_embeds("![[a.png|caption]]") == "![caption](a.png)"

    def test_embed_rewrite_without_alt(self):
        assert rewrite_embeds("x ![[a.png]] y") == "x ![](a.png) y"

    def test_embed_rewrite_applies_to_any_extension(self):
        assert rewrite_embeds("![[Other note]]") == "![](Other note)"

    def test_wiki_link_flattened_to_target(self):
        assert flatten_wiki_links("See [[Target]].") == "See Target."

    def test_wiki_link_flattened_to_display(self):
        assert flatten_wiki_links("See [[Target|Shown]].") == "See Shown."

    def test_embed_rewrite_runs_before_link_flattening(self):
        names = [name for name, _ in TRANSFORM_STAGES]
        assert names == ["remove_featured_line", "rewrite_embeds", "flatten_wiki_links"]

    def test_flattening_first_would_corrupt_embeds(self):
        # Documents why the stage order is fixed
        assert rewrite_embeds(flatten_wiki_links("![[a.png]]")) != "![](a.png)"
        assert flatten_wiki_links(rewrite_embeds("![[a.png]]")) == "![](a.png)"

    def test_remove_featured_line(self):
        content = "\n![cover](cover.png)\nBody"
        index = LineIndex(content)
        featured, _ = select_featured_image(extract_images(content, index))
        context = TransformContext(line_index=index, featured_image=featured)
        assert remove_featured_line(content, context) == "\nBody"

    def test_remove_featured_line_requires_matching_text(self):
        content = "![cover](cover.png)\nBody"
        stale = ImageReference(original_syntax="![other](other.png)", path="other.png")
        context = TransformContext(line_index=LineIndex(content), featured_image=stale)
        assert remove_featured_line(content, context) == content


class TestPrepareMarkdown:
    """Tests for the intermediate Markdown of a conversion."""

    def test_scenario_intermediate_text(self):
        processed, result = prepare_markdown(SCENARIO_NOTE)
        assert processed == "\nBody ![](inline.png) text."
        assert result.featured_image.path == "cover.png"

    def test_front_matter_does_not_shift_first_line(self):
        processed, result = prepare_markdown("---\na: 1\nb: 2\n---\n\n![c](c.png)\nText")
        assert result.featured_image.path == "c.png"
        assert "c.png" not in processed

    def test_wiki_links_and_embeds_together(self):
        processed, _ = prepare_markdown("Intro\n![[a.png|Cap]] and [[Note|link]] and [[Page]]")
        assert processed == "Intro\n![Cap](a.png) and link and Page"


class TestConvertMarkdownToHtml:
    """Tests for the full conversion."""

    def test_scenario(self):
        result = convert_markdown_to_html(SCENARIO_NOTE)
        assert result.featured_image.path == "cover.png"
        assert len(result.images) == 1
        assert result.images[0].path == "inline.png"
        assert result.images[0].is_embed is True
        assert 'src="inline.png"' in result.html
        assert "cover.png" not in result.html
        assert "title: Hi" not in result.html
        assert result.warnings == []

    def test_featured_image_excluded_from_images(self):
        result = convert_markdown_to_html("![hero](hero.jpg)\n\nText ![x](x.png)")
        assert result.featured_image.path == "hero.jpg"
        assert result.featured_image not in result.images
        assert result.all_images == [result.featured_image] + result.images

    def test_external_image_left_untouched(self):
        result = convert_markdown_to_html("![remote](https://example.com/r.png)\n\nText")
        assert result.featured_image is None
        assert result.images == []
        assert 'src="https://example.com/r.png"' in result.html

    def test_empty_note(self):
        result = convert_markdown_to_html("---\ntitle: Empty\n---\n\n   \n")
        assert result.featured_image is None
        assert result.images == []
        assert result.warnings == []

    def test_headings_start_at_level_one(self):
        html = convert_markdown_to_html("# Title\n\n## Section").html
        assert "<h1>Title</h1>" in html
        assert "<h2>Section</h2>" in html

    def test_tables(self):
        html = convert_markdown_to_html("| a | b |\n| --- | --- |\n| 1 | 2 |").html
        assert "<table>" in html
        assert "<td>1</td>" in html

    def test_task_list(self):
        html = convert_markdown_to_html("- [x] done\n- [ ] todo").html
        assert 'type="checkbox"' in html

    def test_strikethrough(self):
        assert "<del>gone</del>" in convert_markdown_to_html("~~gone~~").html

    def test_fenced_code(self):
        html = convert_markdown_to_html("```python\nprint('[[x]]')\n```").html
        assert "<pre><code" in html

    def test_emoji_shortcode(self):
        html = convert_markdown_to_html("Hello :smile:").html
        assert ":smile:" not in html
        assert "\U0001F604" in html

    def test_external_links_open_in_new_tab(self):
        html = convert_markdown_to_html("[site](https://example.com) and [about](/about)").html
        external_tag = re.search(r'<a [^>]*href="https://example.com"[^>]*>', html).group(0)
        internal_tag = re.search(r'<a [^>]*href="/about"[^>]*>', html).group(0)
        assert 'target="_blank"' in external_tag
        assert 'rel="noopener noreferrer"' in external_tag
        assert "target" not in internal_tag

    def test_wiki_links_rendered_as_text(self):
        html = convert_markdown_to_html("See [[My Note|this note]].").html
        assert "See this note." in html
        assert "[[" not in html

    def test_repeated_conversion_is_stable(self):
        assert convert_markdown_to_html(SCENARIO_NOTE) == convert_markdown_to_html(SCENARIO_NOTE)


class TestReplaceImageUrls:
    """Tests for rewriting image sources after upload."""

    def test_double_and_single_quotes(self):
        html = '<img src="a.png"><img src=\'a.png\'>'
        result = replace_image_urls(html, {"a.png": "https://cdn/a.png"})
        assert result == '<img src="https://cdn/a.png"><img src=\'https://cdn/a.png\'>'

    def test_unmapped_paths_untouched(self):
        html = '<img src="a.png"><img src="b.png">'
        result = replace_image_urls(html, {"a.png": "https://cdn/a.png"})
        assert '<img src="b.png">' in result

    def test_regex_metacharacters_escaped(self):
        html = '<img src="img[1]+x.png"><img src="imgA1Bx.png">'
        result = replace_image_urls(html, {"img[1]+x.png": "https://cdn/1.png"})
        assert result == '<img src="https://cdn/1.png"><img src="imgA1Bx.png">'

    def test_only_exact_src_values_replaced(self):
        html = '<img src="sub/a.png"><a href="a.png">a.png</a>'
        assert replace_image_urls(html, {"a.png": "https://cdn/a.png"}) == html

    def test_html_escaped_ampersand(self):
        html = '<img src="a&amp;b.png">'
        result = replace_image_urls(html, {"a&b.png": "https://cdn/ab.png"})
        assert result == '<img src="https://cdn/ab.png">'

    def test_round_trip_removes_all_local_paths(self):
        note = "Intro\n\n![a](a.png)\n\n![[b.png|B]]\n\n![c](dir/c.gif)"
        result = convert_markdown_to_html(note)
        url_map = {image.path: f"https://cdn.example.com/{i}.png" for i, image in enumerate(result.images)}
        html = replace_image_urls(result.html, url_map)
        for path in url_map:
            assert f'"{path}"' not in html
        assert html.count("https://cdn.example.com/") == 3
