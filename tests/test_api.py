"""Tests for the embedded Prebyte interface."""

import json

import pytest

from prebyte import Prebyte, PreprocessError


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "variables": {"name": "World"},
        "profiles": {"loud": {"variables": {"name": "WORLD"}, "rules": {"trim_end": True}}},
    }))
    return path


class TestConfiguration:
    def test_set_variable(self):
        pb = Prebyte()
        pb.set_variable("name", "World")
        pb.set_variable("L", ["a", "b"])
        assert pb.process("Hello %%name%% %%L[1]%%") == "Hello World b"

    def test_settings_at_construction(self, settings_file):
        assert Prebyte(settings_file).process("%%name%%") == "World"

    def test_set_profile(self, settings_file):
        pb = Prebyte(settings_file)
        pb.set_profile("loud")
        assert pb.process("%%name%%") == "WORLD"
        assert pb.state.rules.trim_end is True

    def test_define(self):
        pb = Prebyte()
        pb.define("L=[x,y]")
        assert pb.process("%%L[1]%%") == "y"

    def test_set_ignore(self):
        pb = Prebyte()
        pb.set_ignore("TODO")
        assert pb.process("a%%TODO%%b") == "ab"

    def test_set_rule(self):
        pb = Prebyte()
        pb.set_rule("strict_variables", True)
        with pytest.raises(PreprocessError, match="Variable 'x' not found"):
            pb.process("%%x%%")

    def test_invalid_rule(self):
        with pytest.raises(PreprocessError, match="Invalid rule"):
            Prebyte().set_rule("max_variable_length", "-5")


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

class TestProcess:
    def test_runs_do_not_leak(self):
        pb = Prebyte()
        assert pb.process("%%set var X=1%%%%define macro m%%M%%enddef%%%%X%%") == "1"
        assert pb.process("%%X%%") == "%%X%%"
        assert "X" not in pb.state.variables
        assert pb.state.macros == {}

    def test_rule_changes_do_not_leak(self):
        pb = Prebyte()
        pb.process("%%set rule strict_variables=true%%")
        assert pb.state.rules.strict_variables is False
        assert pb.process("%%x%%") == "%%x%%"

    def test_last_state(self):
        pb = Prebyte()
        assert pb.last_state is None
        pb.process("%%set var L=[a,b]%%%%for i in L%%%%endfor%%")
        assert pb.last_state.variables["i"] == ["b"]
        assert "i" not in pb.state.variables

    def test_output_path(self, tmp_path):
        out = tmp_path / "out.txt"
        pb = Prebyte()
        pb.set_variable("x", "1")
        assert pb.process("v=%%x%%", out) == "v=1"
        assert out.read_text() == "v=1"

    def test_process_file(self, tmp_path):
        src = tmp_path / "in.tpl"
        src.write_text("%%#set var X=2\nX is %%X%%\n")
        out = tmp_path / "out.txt"
        assert Prebyte().process_file(src, out) == "X is 2\n"
        assert out.read_text() == "X is 2\n"

    def test_process_missing_file(self, tmp_path):
        with pytest.raises(PreprocessError, match="Error opening input file"):
            Prebyte().process_file(tmp_path / "nope.tpl")

    def test_include_count(self, tmp_path):
        part = tmp_path / "part.txt"
        part.write_text("p")
        pb = Prebyte()
        assert pb.include_count == 0
        pb.process(f"%%include {part}%%%%include {part}%%")
        assert pb.include_count == 2
        pb.process("none")
        assert pb.include_count == 0

    def test_errors_are_raised_not_exited(self):
        with pytest.raises(PreprocessError):
            Prebyte().process("%%endif%%")

    def test_max_depth(self):
        pb = Prebyte(max_depth=3)
        with pytest.raises(PreprocessError, match=r"Maximum expansion depth \(3\)"):
            pb.process("%%define macro r%%%%exec r%%%%enddef%%%%exec r%%")


class TestListings:
    def test_list_rules(self):
        text = Prebyte().list_rules()
        assert text.startswith("Used Rules:\n\n")
        assert "variable_prefix: %%" in text

    def test_list_variables_empty(self):
        assert Prebyte().list_variables() == "No variables defined."

    def test_list_variables(self):
        pb = Prebyte()
        pb.set_variable("a", "1")
        pb.set_variable("l", ["x", "y"])
        assert pb.list_variables() == "Defined variables:\n\na = 1\nl = [x, y]"
