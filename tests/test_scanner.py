"""Tests for block splitting and tag scanning."""

import pytest

from docprocessor.scanner import (
    find_all_tag_names,
    find_block_tag_name,
    find_block_tags,
    find_inline_tags,
    find_unclosed_inline_tags,
    get_tag_name_or_null,
    join_blocks,
    split_blocks,
    split_blocks_with_ranges,
)


class TestTagNames:
    """Reading tag names."""

    def test_scenario_e_inline_tag(self):
        content = "{@tag simple content}"
        assert get_tag_name_or_null(content) == "tag"

        (tag,) = find_inline_tags(content)
        assert tag.name == "tag"
        assert (tag.start, tag.end) == (0, len(content))
        assert tag.content_text(content) == "@tag simple content"

    @pytest.mark.parametrize(
        "line, expected",
        [
            ("@param x", "param"),
            ("   @return the value", "return"),
            ("@include", "include"),
            ("@ x", None),
            ("mail me@example.com", None),
            ("\\@escaped", None),
        ],
    )
    def test_block_tag_name(self, line, expected):
        assert find_block_tag_name(line) == expected

    def test_name_of_plain_text(self):
        assert get_tag_name_or_null("no tag") is None


class TestInlineTags:
    """Brace matching for inline tags."""

    def test_nested_tags_come_innermost_first(self):
        content = "a {@include {@includeArg x}} b"
        tags = find_inline_tags(content)
        assert [tag.name for tag in tags] == ["includeArg", "include"]
        assert tags[0].depth == 1
        assert tags[1].text(content) == "{@include {@includeArg x}}"

    def test_plain_braces_are_balanced(self):
        content = "{@tag {a} b} after"
        (tag,) = find_inline_tags(content)
        assert tag.text(content) == "{@tag {a} b}"

    def test_escaped_brace_is_text(self):
        assert find_inline_tags("\\{@tag x}") == []

    def test_code_span_is_ignored(self):
        assert find_inline_tags("use `{@tag x}` literally") == []

    def test_fenced_code_is_ignored(self):
        content = "```\n{@tag x}\n```\n{@other y}"
        assert [tag.name for tag in find_inline_tags(content)] == ["other"]

    def test_unclosed_tag_is_reported(self):
        assert find_inline_tags("{@tag x") == []
        assert find_unclosed_inline_tags("text {@tag x") == [5]


class TestBlocks:
    """Splitting content into blocks."""

    def test_split_and_join(self):
        content = "Intro\n@param a the a\n@return the result"
        blocks = split_blocks(content)
        assert blocks == ["Intro", "@param a the a", "@return the result"]
        assert join_blocks(blocks) == content

    def test_block_tag_consumes_following_lines(self):
        assert split_blocks("@include [B]\nHi") == ["@include [B]\nHi"]

    def test_leading_empty_block(self):
        assert split_blocks("\n@see X\n") == ["", "@see X\n"]

    def test_block_tag_inside_fence_is_text(self):
        content = "a\n```\n@sample x\n```\n@see y"
        assert split_blocks(content) == ["a\n```\n@sample x\n```", "@see y"]

    def test_ranges_cover_content(self):
        content = "Intro\n@param a\n@return b"
        blocks = split_blocks_with_ranges(content)
        assert [block.tag for block in blocks] == [None, "param", "return"]
        for block in blocks:
            assert content[block.start:block.start + len(block.text)] == block.text
        assert blocks[-1].end == len(content)

    def test_find_block_tags(self):
        content = "Intro\n  @see Foo"
        (tag,) = find_block_tags(content)
        assert tag.name == "see"
        assert tag.content_text(content) == "@see Foo"

    def test_all_tag_names(self):
        assert find_all_tag_names("x {@a b}\n@c d\n```\n@e\n```") == {"a", "c"}
