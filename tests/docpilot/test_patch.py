"""Tests for AST-safe documentation patching."""

import threading

import pytest

from docpilot.find import Finder
from docpilot.langs import GoLanguage, UnknownLanguageError
from docpilot.nodes import ParseError
from docpilot.patch import (
    AlreadyDocumentedError,
    Patch,
    PatchApplyError,
    SymbolNotFoundError,
)

GO_SCENARIO = """package foo

func Foo() {}

var Bar = "bar"

const (
	X = 1
	Y = 2
)
"""

GO_SCENARIO_PATCHED = """package foo

// Foo is a foo.
func Foo() {}

// Bar is a bar.
var Bar = "bar"

const (
	// X is x.
	X = 1
	// Y is y.
	Y = 2
)
"""

GO_GROUP = """package a

const (
	X = 1
	// Y is documented.
	Y = 2
)
"""

GO_ONE_LINE_GROUP = "package a\n\nconst (X = 1; Y = 2;)\n"


class TestGoPatch:
    """Tests for patching Go files."""

    def test_scenario(self, tmp_path, write, go):
        """Test every declaration gets exactly its own comment."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        docs = {
            "func:Foo": "Foo is a foo.",
            "var:Bar": "Bar is a bar.",
            "const:X": "X is x.",
            "const:Y": "Y is y.",
        }
        for ident, text in docs.items():
            patch.comment("foo.go", ident, text)

        patch.apply()

        patched = (tmp_path / "foo.go").read_text()
        assert patched == GO_SCENARIO_PATCHED
        assert Finder(go).find(patched) == []

    def test_group_isolation(self, tmp_path, write):
        """Test commenting one group member leaves its siblings alone."""
        write("a.go", GO_GROUP)
        patch = Patch(tmp_path)

        patch.comment("a.go", "const:X", "X is x.")

        out = patch.dry_run()["a.go"].decode()
        assert out == GO_GROUP.replace("\tX = 1\n", "\t// X is x.\n\tX = 1\n")
        assert "\t// Y is documented.\n\tY = 2" in out

    def test_one_line_group(self, tmp_path, write, go):
        """Test members sharing a line are split onto their own commented lines."""
        write("a.go", GO_ONE_LINE_GROUP)
        patch = Patch(tmp_path)

        patch.comment("a.go", "const:X", "X is x.")
        patch.comment("a.go", "const:Y", "Y is y.")

        out = patch.dry_run()["a.go"].decode()
        assert out == "package a\n\nconst (\n\t// X is x.\n\tX = 1;\n\t// Y is y.\n\tY = 2;)\n"
        assert Finder(go).find(out) == []

    def test_one_line_group_isolation(self, tmp_path, write):
        """Test commenting the second member of a one-line group leaves the first alone."""
        write("a.go", GO_ONE_LINE_GROUP)
        patch = Patch(tmp_path)

        patch.comment("a.go", "const:Y", "Y is y.")

        assert patch.dry_run()["a.go"].decode() == (
            "package a\n\nconst (X = 1;\n\t// Y is y.\n\tY = 2;)\n"
        )

    def test_multi_name_spec(self, tmp_path, write):
        """Test every name of a spec addresses its one comment."""
        write("a.go", "package a\n\nvar A, B = 1, 2\n")
        patch = Patch(tmp_path)

        patch.comment("a.go", "var:B", "A and B are numbers.")

        assert patch.dry_run()["a.go"].decode() == (
            "package a\n\n// A and B are numbers.\nvar A, B = 1, 2\n"
        )
        with pytest.raises(AlreadyDocumentedError):
            patch.comment("a.go", "var:A", "A is a number.")

    def test_already_documented(self, tmp_path, write):
        """Test documented symbols are refused without override."""
        write("a.go", GO_GROUP)
        patch = Patch(tmp_path)

        with pytest.raises(AlreadyDocumentedError):
            patch.comment("a.go", "const:Y", "Y is y.")

    def test_override_replaces(self, tmp_path, write):
        """Test override replaces existing documentation."""
        write("a.go", GO_GROUP)
        patch = Patch(tmp_path, override=True)

        patch.comment("a.go", "const:Y", "Y is new.")

        out = patch.dry_run()["a.go"].decode()
        assert "// Y is new.\n\tY = 2" in out
        assert "documented" not in out

    def test_second_comment_needs_override(self, tmp_path, write):
        """Test queued documentation counts as existing documentation."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        patch.comment("foo.go", "func:Foo", "Foo is a foo.")

        with pytest.raises(AlreadyDocumentedError):
            patch.comment("foo.go", "func:Foo", "Foo is another foo.")

        overriding = Patch(tmp_path, override=True)
        overriding.comment("foo.go", "func:Foo", "Foo is a foo.")
        overriding.comment("foo.go", "func:Foo", "Foo is another foo.")
        out = overriding.dry_run()["foo.go"].decode()
        assert "// Foo is another foo.\nfunc Foo" in out
        assert "Foo is a foo." not in out

    def test_clear(self, tmp_path, write):
        """Test empty text removes documentation."""
        write("a.go", GO_GROUP)
        patch = Patch(tmp_path, override=True)

        patch.comment("a.go", "const:Y", "")

        assert patch.dry_run()["a.go"].decode() == "package a\n\nconst (\n\tX = 1\n\tY = 2\n)\n"

    def test_methods(self, tmp_path, write):
        """Test pointer, value and generic receivers resolve."""
        write(
            "m.go",
            "package m\n\ntype Foo[T any] struct{}\n\n"
            "func (f *Foo[T]) Ptr() {}\n\nfunc (f Foo[T]) Val() {}\n",
        )
        patch = Patch(tmp_path)

        patch.comment("m.go", "func:(*Foo).Ptr", "Ptr does p.")
        patch.comment("m.go", "func:Foo.Val", "Val does v.")
        patch.comment("m.go", "type:Foo", "Foo is generic.")

        out = patch.dry_run()["m.go"].decode()
        assert "// Ptr does p.\nfunc (f *Foo[T]) Ptr()" in out
        assert "// Val does v.\nfunc (f Foo[T]) Val()" in out
        assert "// Foo is generic.\ntype Foo[T any]" in out

    def test_interface_method(self, tmp_path, write):
        """Test interface methods are commented in place."""
        write("r.go", "package r\n\ntype Reader interface {\n\tRead(p []byte) (int, error)\n}\n")
        patch = Patch(tmp_path)

        patch.comment("r.go", "func:Reader.Read", "Read reads into p.")

        out = patch.dry_run()["r.go"].decode()
        assert "\t// Read reads into p.\n\tRead(p []byte)" in out

    def test_long_text_is_wrapped(self, tmp_path, write):
        """Test long documentation becomes several comment lines."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)

        patch.comment("foo.go", "func:Foo", "Foo " + "does things " * 20)

        out = patch.dry_run()["foo.go"].decode()
        lines = [line for line in out.splitlines() if line.startswith("//")]
        assert len(lines) > 1
        assert all(len(line) <= 80 for line in lines)

    def test_symbol_not_found(self, tmp_path, write):
        """Test unknown identifiers are reported."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)

        with pytest.raises(SymbolNotFoundError):
            patch.comment("foo.go", "func:Missing", "Missing.")
        with pytest.raises(SymbolNotFoundError):
            patch.comment("foo.go", "not an identifier", "Nope.")

    def test_unknown_language(self, tmp_path):
        """Test files without a binding are rejected."""
        with pytest.raises(UnknownLanguageError):
            Patch(tmp_path).comment("notes.txt", "func:Foo", "Foo.")

    def test_parse_error_names_file(self, tmp_path, write):
        """Test unparsable files raise ParseError with the file name."""
        write("bad.go", "package bad\n\nfunc Foo( {\n")

        with pytest.raises(ParseError) as exc_info:
            Patch(tmp_path).comment("bad.go", "func:Foo", "Foo.")
        assert exc_info.value.file == "bad.go"


class TestPatchOutput:
    """Tests for dry_run, apply and identifiers."""

    def test_dry_run_does_not_write(self, tmp_path, write):
        """Test dry_run leaves files untouched."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        patch.comment("foo.go", "func:Foo", "Foo is a foo.")

        out = patch.dry_run()

        assert list(out) == ["foo.go"]
        assert b"// Foo is a foo." in out["foo.go"]
        assert (tmp_path / "foo.go").read_text() == GO_SCENARIO

    def test_apply_to_other_root(self, tmp_path, write):
        """Test apply can write below a different root."""
        write("src/foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        patch.comment("src/foo.go", "func:Foo", "Foo is a foo.")
        target = tmp_path / "out"

        patch.apply(target)

        assert "// Foo is a foo." in (target / "src" / "foo.go").read_text()
        assert (tmp_path / "src" / "foo.go").read_text() == GO_SCENARIO

    def test_apply_collects_failures(self, tmp_path, write):
        """Test a failing file does not stop the others."""
        write("a.go", GO_SCENARIO)
        write("b.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        patch.comment("a.go", "func:Foo", "Foo is a foo.")
        patch.comment("b.go", "func:Foo", "Foo is a foo.")
        target = tmp_path / "out"
        (target / "a.go").mkdir(parents=True)

        with pytest.raises(PatchApplyError) as exc_info:
            patch.apply(target)

        assert list(exc_info.value.failures) == ["a.go"]
        assert "// Foo is a foo." in (target / "b.go").read_text()

    def test_identifiers(self, tmp_path, write):
        """Test applied identifiers are listed per file."""
        write("foo.go", GO_SCENARIO)
        patch = Patch(tmp_path)
        patch.comment("foo.go", "var:Bar", "Bar is a bar.")
        patch.comment("foo.go", "func:Foo", "Foo is a foo.")

        assert patch.identifiers() == {"foo.go": ["var:Bar", "func:Foo"]}
        assert patch.files == ["foo.go"]


class TestPythonPatch:
    """Tests for patching Python files."""

    def test_function_docstring(self, tmp_path, write):
        """Test docstrings are inserted with the body indentation."""
        write("m.py", "def add(a, b):\n    return a + b\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "func:add", "Add two numbers.")

        assert patch.dry_run()["m.py"].decode() == (
            'def add(a, b):\n    """Add two numbers."""\n    return a + b\n'
        )

    def test_inline_body(self, tmp_path, write):
        """Test one-line bodies are split so the result stays valid."""
        write("m.py", "def noop(): pass\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "func:noop", "Do nothing.")

        assert patch.dry_run()["m.py"].decode() == (
            'def noop():\n    """Do nothing."""\n    pass\n'
        )

    def test_class_and_method(self, tmp_path, write):
        """Test class and method docstrings in one file."""
        write("m.py", "class Thing:\n    def method(self):\n        return 1\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "type:Thing", "A thing.")
        patch.comment("m.py", "func:Thing.method", "Return one.")

        assert patch.dry_run()["m.py"].decode() == (
            "class Thing:\n"
            '    """A thing."""\n'
            "    def method(self):\n"
            '        """Return one."""\n'
            "        return 1\n"
        )

    def test_property(self, tmp_path, write):
        """Test properties are addressed with prop identifiers."""
        write("m.py", "class C:\n    @property\n    def size(self):\n        return 0\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "prop:C.size", "The size.")

        assert '        """The size."""\n        return 0' in patch.dry_run()["m.py"].decode()

    def test_module_value(self, tmp_path, write):
        """Test module values get line comments."""
        write("m.py", "import os\n\nLIMIT = 10\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "const:LIMIT", "Maximum number of items.")

        assert patch.dry_run()["m.py"].decode() == (
            "import os\n\n# Maximum number of items.\nLIMIT = 10\n"
        )

    def test_override_docstring(self, tmp_path, write):
        """Test replacing an existing docstring keeps the body intact."""
        write("m.py", 'def f():\n    """Old."""\n    return 1\n')
        patch = Patch(tmp_path, override=True)

        patch.comment("m.py", "func:f", "New.")

        assert patch.dry_run()["m.py"].decode() == 'def f():\n    """New."""\n    return 1\n'

    def test_clear_only_docstring_leaves_pass(self, tmp_path, write):
        """Test removing the only statement keeps the body valid."""
        write("m.py", 'def f():\n    """Old."""\n')
        patch = Patch(tmp_path, override=True)

        patch.comment("m.py", "func:f", "")

        assert patch.dry_run()["m.py"].decode() == "def f():\n    pass\n"

    def test_clear_docstring_before_statements(self, tmp_path, write):
        """Test removing a docstring drops its line."""
        write("m.py", 'def f():\n    """Old."""\n    return 1\n')
        patch = Patch(tmp_path, override=True)

        patch.comment("m.py", "func:f", "")

        assert patch.dry_run()["m.py"].decode() == "def f():\n    return 1\n"

    def test_multiline_docstring_is_valid(self, tmp_path, write, python):
        """Test long docstrings wrap and still parse."""
        write("m.py", "class C:\n    def m(self):\n        return 1\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "func:C.m", "Return one. " + "It really does. " * 10)

        out = patch.dry_run()["m.py"]
        python.parse(out)
        assert out.decode().endswith('\n        """\n        return 1\n')

    def test_tuple_assignment(self, tmp_path, write):
        """Test both names of a tuple assignment share one comment."""
        write("m.py", "A, B = 1, 2\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "const:B", "Two numbers.")

        assert patch.dry_run()["m.py"].decode() == "# Two numbers.\nA, B = 1, 2\n"
        with pytest.raises(AlreadyDocumentedError):
            patch.comment("m.py", "const:A", "Two numbers.")

    def test_values_sharing_a_line(self, tmp_path, write, python):
        """Test statements after a semicolon move to their own line."""
        write("m.py", "X = 1; Y = 2\n")
        patch = Patch(tmp_path)

        patch.comment("m.py", "const:X", "X is x.")
        patch.comment("m.py", "const:Y", "Y is y.")

        out = patch.dry_run()["m.py"].decode()
        assert out == "# X is x.\nX = 1;\n# Y is y.\nY = 2\n"
        assert Finder(python).find(out) == []


class TestPatchConcurrency:
    """Tests for loading files from several threads."""

    def test_files_load_in_parallel(self, tmp_path, write, monkeypatch):
        """Test parsing one file does not hold up loading another."""
        write("a.go", GO_SCENARIO)
        write("b.go", GO_SCENARIO)
        both_parsing = threading.Barrier(2, timeout=5)
        parse = GoLanguage.parse

        def parse_together(self, code):
            both_parsing.wait()
            return parse(self, code)

        monkeypatch.setattr(GoLanguage, "parse", parse_together)
        patch = Patch(tmp_path)
        errors = []

        def comment(file):
            try:
                patch.comment(file, "func:Foo", "Foo is a foo.")
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=comment, args=(f,)) for f in ("a.go", "b.go")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert errors == []
        assert patch.identifiers() == {"a.go": ["func:Foo"], "b.go": ["func:Foo"]}

    def test_file_is_parsed_once(self, tmp_path, write, monkeypatch):
        """Test concurrent first uses of one file share a single parse."""
        write("foo.go", GO_SCENARIO)
        parses = []
        parse = GoLanguage.parse

        def counting_parse(self, code):
            parses.append(code)
            return parse(self, code)

        monkeypatch.setattr(GoLanguage, "parse", counting_parse)
        patch = Patch(tmp_path)
        docs = {"func:Foo": "Foo is a foo.", "var:Bar": "Bar is a bar.", "const:X": "X is x."}
        threads = [
            threading.Thread(target=patch.comment, args=("foo.go", ident, text))
            for ident, text in docs.items()
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert len(parses) == 1
        assert sorted(patch.identifiers()["foo.go"]) == sorted(docs)
