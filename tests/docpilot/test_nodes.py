"""Tests for the nodes package: syntax trees, edits and comment rendering."""

import pytest

from docpilot.nodes import ParseError, find_all, removal_range
from docpilot.nodes.comments import docstring, line_comment, paragraphs, wrap


class TestSyntaxTree:
    """Tests for SyntaxTree edits and rendering."""

    def test_render_without_edits_is_identity(self, go):
        """Test an untouched tree renders its exact source."""
        code = b"package a\n\n//  odd   spacing\nfunc A()   {}\n"
        tree = go.parse(code)

        assert not tree.dirty
        assert tree.render() == code

    def test_insert_edit(self, go):
        """Test an empty-range edit inserts text."""
        tree = go.parse(b"package a\n\nfunc A() {}\n")

        tree.edit("doc", 11, 11, b"// A does a.\n")

        assert tree.render() == b"package a\n\n// A does a.\nfunc A() {}\n"

    def test_same_key_replaces_edit(self, go):
        """Test a later edit under the same key wins."""
        tree = go.parse(b"package a\n\nfunc A() {}\n")

        tree.edit("doc", 11, 11, b"// first\n")
        tree.edit("doc", 11, 11, b"// second\n")

        assert len(tree.edits) == 1
        assert b"// second" in tree.render()
        assert b"// first" not in tree.render()

    def test_overlapping_edit_is_dropped(self, go):
        """Test an edit inside an earlier, wider edit is ignored."""
        code = b"package a\n\nfunc A() {}\n"
        tree = go.parse(code)

        tree.edit("wide", 0, 10, b"package b\n")
        tree.edit("inner", 8, 9, b"z")

        assert tree.render() == b"package b\n\nfunc A() {}\n"

    def test_indent_helpers(self, go):
        """Test indentation lookups."""
        code = b"package a\n\nconst (\n\tX = 1\n)\n"
        tree = go.parse(code)
        offset = code.index(b"X")

        assert tree.indent_of(offset) == "\t"
        assert tree.line_indent(offset) == "\t"
        assert tree.line_start(offset) == offset - 1


class TestParse:
    """Tests for parse errors."""

    def test_syntax_error_raises(self, go):
        """Test code with syntax errors raises ParseError."""
        with pytest.raises(ParseError) as exc_info:
            go.parse(b"package a\n\nfunc A( {\n")

        assert exc_info.value.language == "go"

    def test_error_line_is_the_broken_declaration(self, go):
        """Test the reported line is where the error is, not the top of the file."""
        with pytest.raises(ParseError) as exc_info:
            go.parse(b"package a\n\nfunc Foo() {}\n\nconst (X = 1; Y = 2)\n")

        assert exc_info.value.line == 4

    def test_error_message_names_file(self):
        """Test the message includes file and one-based line."""
        err = ParseError("go", 2, file="pkg/a.go")

        assert str(err) == "failed to parse go source at pkg/a.go:3"


class TestRemovalRange:
    """Tests for removal_range."""

    def test_removes_lone_and_trailing_comments(self, go):
        """Test a lone comment takes its line and a trailing one its padding."""
        tree = go.parse(b"package a\n\n// lone\nvar x = 1 // trailing\n")

        for comment in find_all(tree.root, "comment"):
            start, end = removal_range(tree, comment)
            tree.edit(f"c:{start}", start, end, b"")

        assert tree.render() == b"package a\n\nvar x = 1\n"


class TestComments:
    """Tests for comment text formatting."""

    def test_paragraphs_collapse_whitespace(self):
        """Test whitespace inside paragraphs is collapsed."""
        assert paragraphs("  one\n two  \n\n\nthree ") == ["one two", "three"]

    def test_paragraphs_empty(self):
        """Test empty text has no paragraphs."""
        assert paragraphs("   \n ") == []

    def test_wrap_width(self):
        """Test wrapped lines respect the width."""
        lines = wrap("word " * 40, width=30)

        assert len(lines) > 1
        assert all(len(line) <= 30 for line in lines)

    def test_wrap_keeps_paragraph_breaks(self):
        """Test paragraph breaks survive as empty lines."""
        assert wrap("First.\n\nSecond.") == ["First.", "", "Second."]

    def test_line_comment(self):
        """Test rendering as Go line comments."""
        text = line_comment("Foo does things.\n\nIt is fast.", "//", "\t")

        assert text == "\t// Foo does things.\n\t//\n\t// It is fast.\n"

    def test_line_comment_empty(self):
        """Test empty text renders nothing."""
        assert line_comment("", "#") == ""

    def test_short_docstring(self):
        """Test a short text fits on one line."""
        assert docstring("Add two numbers.", "    ") == '"""Add two numbers."""'

    def test_long_docstring(self):
        """Test a long text becomes a multi-line docstring."""
        result = docstring("word " * 40, "    ")

        assert result.startswith('"""word')
        assert result.endswith('\n    """')
        assert "\n    word" in result

    def test_docstring_escapes_quotes(self):
        """Test triple quotes and a trailing quote are escaped."""
        result = docstring('Return """ or "x"')

        assert '\\"\\"\\"' in result
        assert result.endswith('\\""""')
