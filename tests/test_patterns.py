"""Tests for glob pattern matching and device filtering."""
import pytest

from portgrid.patterns import DeviceFilter, compile_pattern, matches_any, parse_patterns


class TestCompilePattern:
    """compile_pattern: anchored, case-insensitive, '*' only wildcard."""

    def test_ip_wildcard(self):
        match = compile_pattern("10.2.50.*")
        assert match("10.2.50.100")
        assert not match("10.2.51.100")

    def test_hostname_prefix_case_insensitive(self):
        match = compile_pattern("switch*")
        assert match("switch01")
        assert match("SWITCH01")
        assert match("Switch")

    def test_full_match_only(self):
        match = compile_pattern("core")
        assert match("core")
        assert not match("core-1")
        assert not match("my-core")

    def test_dot_is_literal(self):
        """Regex metacharacters are escaped."""
        assert not compile_pattern("10.2.50.*")("10x2x50x1")

    @pytest.mark.parametrize("pattern,value", [
        ("a+b", "a+b"),
        ("(lab)", "(lab)"),
        ("sw[1]", "sw[1]"),
        ("cost$", "cost$"),
        ("x?y", "x?y"),
    ])
    def test_metacharacters_match_literally(self, pattern, value):
        assert compile_pattern(pattern)(value)

    def test_plus_not_quantifier(self):
        assert not compile_pattern("a+b")("aab")

    def test_wildcard_in_middle(self):
        match = compile_pattern("core-*-sw")
        assert match("core-dc1-sw")
        assert match("core--sw")
        assert not match("core-dc1-rt")

    def test_star_alone_matches_everything(self):
        assert compile_pattern("*")("anything")


class TestMatchesAny:
    """matches_any edge cases."""

    def test_empty_value(self):
        assert not matches_any("", ["*"])
        assert not matches_any(None, ["*"])

    def test_empty_patterns(self):
        assert not matches_any("core-1", [])

    def test_any_pattern(self):
        assert matches_any("edge-7", ["core-*", "edge-*"])
        assert not matches_any("dist-1", ["core-*", "edge-*"])


class TestParsePatterns:
    """Comma-separated pattern parsing."""

    def test_trims_and_drops_blanks(self):
        assert parse_patterns(" core-*, ,edge-* ,") == ["core-*", "edge-*"]

    def test_empty(self):
        assert parse_patterns(None) == []
        assert parse_patterns("") == []
        assert parse_patterns("   ") == []

    def test_list(self):
        assert parse_patterns(["a", " b ", ""]) == ["a", "b"]

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            parse_patterns(42)


class TestDeviceFilter:
    """Include/exclude semantics."""

    def test_exclude_wins_over_include(self):
        f = DeviceFilter(include=["core-*"], exclude=["core-test"])
        assert not f.allows("core-test")

    def test_no_include_match_excludes(self):
        f = DeviceFilter(include=["core-*"], exclude=["core-test"])
        assert not f.allows("edge-1")

    def test_include_match_passes(self):
        f = DeviceFilter(include=["core-*"], exclude=["core-test"])
        assert f.allows("core-1")

    def test_empty_filter_allows_everything(self):
        f = DeviceFilter()
        assert not f.active
        assert f.allows("anything")
        assert f.allows(None)

    def test_exclude_only(self):
        f = DeviceFilter(exclude=["lab-*"])
        assert f.active
        assert f.allows("core-1")
        assert not f.allows("LAB-01")

    def test_ip_matches_include(self):
        f = DeviceFilter(include=["10.2.50.*"])
        assert f.allows("core-1", "10.2.50.7")
        assert not f.allows("core-1", "10.2.51.7")

    def test_ip_matches_exclude(self):
        f = DeviceFilter(exclude=["10.9.*"])
        assert not f.allows("core-1", "10.9.0.1")
