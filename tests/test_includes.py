"""Tests for include handling and built-in variables."""

import os
import re
import time

import pytest

from conftest import expand, make_state, run
from prebyte import Prebyte
from prebyte._version import __version__
from prebyte.engine import PreprocessError


# ---------------------------------------------------------------------------
# include
# ---------------------------------------------------------------------------

class TestInclude:
    def test_include_expands_in_place(self, tmp_path):
        part = tmp_path / "part.txt"
        part.write_text("<%%X%%>")
        assert expand(f"a%%include {part}%%b", X="x") == "a<x>b"

    def test_include_shares_state(self, tmp_path):
        part = tmp_path / "defs.txt"
        part.write_text("%%set var FROM_INCLUDE=yes%%%%define macro m%%M%%enddef%%")
        state = make_state()
        out = run(f"%%include {part}%%%%FROM_INCLUDE%%%%exec m%%", state)
        assert out == "yesM"
        assert state.include_count == 1

    def test_relative_to_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / "local.txt").write_text("local")
        monkeypatch.chdir(tmp_path)
        assert expand("%%include local.txt%%") == "local"

    def test_include_path_rule(self, tmp_path):
        (tmp_path / "lib.txt").write_text("from lib")
        assert expand("%%include lib.txt%%", {"include_path": str(tmp_path)}) == "from lib"

    def test_missing(self):
        with pytest.raises(PreprocessError, match="Include file 'nope.txt' not found"):
            expand("%%include nope.txt%%", {"include_path": "/nonexistent-prebyte-dir"})

    def test_same_file_twice_is_not_a_cycle(self, tmp_path):
        part = tmp_path / "p.txt"
        part.write_text("p")
        state = make_state()
        assert run(f"%%include {part}%%%%include {part}%%", state) == "pp"
        assert state.include_count == 2

    def test_circular(self, tmp_path):
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_text(f"A%%include {b}%%")
        b.write_text(f"B%%include {a}%%")
        with pytest.raises(PreprocessError, match="Circular include detected"):
            expand(f"%%include {a}%%")

    def test_self_include_from_process_file(self, tmp_path):
        doc = tmp_path / "doc.txt"
        doc.write_text(f"%%include {doc}%%")
        with pytest.raises(PreprocessError, match="Circular include detected") as info:
            Prebyte().process_file(doc)
        assert info.value.source_file == str(doc.resolve())
        assert info.value.line == 1

    def test_error_location_names_included_file(self, tmp_path):
        part = tmp_path / "bad.txt"
        part.write_text("ok\n%%endif%%")
        with pytest.raises(PreprocessError) as info:
            expand(f"%%include {part}%%")
        assert info.value.source_file == str(part.resolve())
        assert info.value.line == 2

    def test_unmatched_prefix_names_included_file(self, tmp_path):
        part = tmp_path / "open.txt"
        part.write_text("x\n%%oops")
        with pytest.raises(PreprocessError, match="Unmatched variable prefix") as info:
            expand(f"a\n%%include {part}%%")
        assert info.value.source_file == str(part.resolve())
        assert info.value.line == 2

    def test_unbalanced_include_is_fatal(self, tmp_path):
        part = tmp_path / "open.txt"
        part.write_text("%%if A%%")
        with pytest.raises(PreprocessError, match="Unterminated 'if'"):
            expand(f"%%include {part}%%%%endif%%", A="1")


# ---------------------------------------------------------------------------
# Built-ins
# ---------------------------------------------------------------------------

class TestBuiltins:
    def test_date_and_time_formats(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", expand("%%__DATE__%%"))
        assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", expand("%%__TIME__%%"))
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", expand("%%__DATETIME__%%"))

    def test_clock_fixed_for_the_run(self):
        state = make_state()
        expected = state.start_time.strftime("%Y|%m|%d|%H|%M|%S")
        out = run("%%__YEAR__%%|%%__MONTH__%%|%%__DAY__%%|%%__HOUR__%%|%%__MINUTE__%%|%%__SECOND__%%", state)
        assert out == expected

    def test_unix_timestamp(self):
        state = make_state()
        assert run("%%__UNIXTIMESTAMP__%%", state) == str(int(state.start_time.timestamp()))

    def test_user_and_host(self, monkeypatch):
        monkeypatch.setenv("USER", "alice")
        monkeypatch.delenv("HOST", raising=False)
        monkeypatch.setenv("COMPUTERNAME", "box")
        assert expand("%%__USER__%%@%%__HOST__%%") == "alice@box"

    def test_pwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert expand("%%__PWD__%%") == os.getcwd()

    def test_version(self):
        assert expand("%%__VERSION__%%") == __version__

    def test_line(self):
        assert expand("a\nb\n%%__LINE__%%") == "a\nb\n3"

    def test_unknown_builtin_is_empty(self):
        assert expand("[%%__NOPE__%%]") == "[]"

    def test_unknown_builtin_is_not_a_variable(self):
        assert expand("[%%__mine__%%]", __mine__="x") == "[]"

    def test_file_builtins_empty_without_file(self):
        assert expand("[%%__FILE__%%][%%__FILE_NAME__%%][%%__FILE_SIZE__%%]") == "[][][]"

    def test_file_builtins(self, tmp_path):
        doc = tmp_path / "page.tpl"
        doc.write_text("%%__FILE_NAME__%%|%%__FILE_EXT__%%|%%__FILE_PATH__%%|%%__FILE_SIZE__%%")
        size = doc.stat().st_size
        out = Prebyte().process_file(doc)
        assert out == f"page.tpl|.tpl|{doc.resolve().parent}|{size}"

    def test_file_is_input_path_as_given(self, tmp_path, monkeypatch):
        (tmp_path / "doc.txt").write_text("%%__FILE__%%")
        monkeypatch.chdir(tmp_path)
        assert Prebyte().process_file("doc.txt") == "doc.txt"

    def test_file_inside_include(self, tmp_path, monkeypatch):
        (tmp_path / "inner.txt").write_text("%%__FILE__%%")
        (tmp_path / "doc.txt").write_text("%%__FILE__%%>%%include inner.txt%%>%%__FILE__%%")
        monkeypatch.chdir(tmp_path)
        expected = f"doc.txt>{(tmp_path / 'inner.txt').resolve()}>doc.txt"
        assert Prebyte().process_file("doc.txt") == expected

    def test_file_created(self, tmp_path):
        doc = tmp_path / "doc.txt"
        doc.write_text("%%__FILE_CREATED__%%")
        assert Prebyte().process_file(doc) == time.ctime(doc.stat().st_mtime)

    def test_file_refers_to_innermost_include(self, tmp_path):
        part = tmp_path / "inner.txt"
        part.write_text("%%__FILE_NAME__%%")
        doc = tmp_path / "outer.txt"
        doc.write_text(f"%%__FILE_NAME__%%>%%include {part}%%>%%__FILE_NAME__%%")
        assert Prebyte().process_file(doc) == "outer.txt>inner.txt>outer.txt"

    def test_variable_cannot_shadow_builtin(self):
        assert expand("%%__VERSION__%%", __VERSION__="mine") == __version__
