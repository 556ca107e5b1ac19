from __future__ import annotations

import pytest

from kubelens.core.errors import InvalidPatternError
from kubelens.core.log_filter import count_matching_lines, filter_lines, split_lines, validate_filter_spec
from kubelens.core.models import FilterSpec


def test_include_keeps_matching_lines():
    assert filter_lines("a\nb\nc", FilterSpec(include=["b"])) == "b"


def test_exclude_drops_matching_lines():
    assert filter_lines("a\nb\nc", FilterSpec(exclude=["b"])) == "a\nc"


def test_regex_search_is_unanchored_per_line():
    assert filter_lines("a1\nba\nac", FilterSpec(include=["^a"], use_regex=True)) == "a1\nac"
    assert filter_lines("a1\nba\nac", FilterSpec(include=["a$"], use_regex=True)) == "ba"
    assert filter_lines("error 500\nok 200", FilterSpec(include=[r"\d{3}"], use_regex=True)) == "error 500\nok 200"


def test_include_is_or_and_exclude_applies_after():
    content = "INFO start\nWARN disk\nERROR db\nERROR healthcheck"
    spec = FilterSpec(include=["WARN", "ERROR"], exclude=["healthcheck"])
    assert filter_lines(content, spec) == "WARN disk\nERROR db"


def test_literal_mode_is_case_sensitive_and_ignores_regex_syntax():
    content = "Error x\nerror y\na.b\naxb"
    assert filter_lines(content, FilterSpec(include=["error"])) == "error y"
    assert filter_lines(content, FilterSpec(include=["a.b"])) == "a.b"


def test_trailing_newline_does_not_create_a_line():
    assert split_lines("a\nb\n") == ["a", "b"]
    assert filter_lines("a\nb\n", FilterSpec(exclude=["zzz"])) == "a\nb"


def test_interior_blank_lines_survive_without_include():
    assert filter_lines("a\n\nb\n", FilterSpec(exclude=["zzz"])) == "a\n\nb"


def test_no_match_is_empty_string_and_counts_zero():
    spec = FilterSpec(include=["nothing-matches"])
    assert filter_lines("a\nb", spec) == ""
    assert count_matching_lines("a\nb", spec) == 0


def test_none_spec_passes_content_through():
    assert filter_lines("a\nb\n", None) == "a\nb\n"


@pytest.mark.parametrize(
    "content,spec",
    [
        ("a\nb\nc", FilterSpec(include=["b"])),
        ("a\nb\nc\n", FilterSpec(exclude=["b"])),
        ("x\n\ny\n", FilterSpec()),
        ("GET /a 200\nGET /b 500\nPOST /c 502", FilterSpec(include=[r" 5\d\d$"], use_regex=True)),
        ("", FilterSpec(include=["a"])),
    ],
)
def test_count_equals_lines_in_filtered_output(content, spec):
    filtered = filter_lines(content, spec)
    expected = 0 if filtered == "" else len(filtered.split("\n"))
    assert count_matching_lines(content, spec) == expected


def test_invalid_include_regex_names_pattern_and_source():
    with pytest.raises(InvalidPatternError) as ei:
        validate_filter_spec(FilterSpec(include=["ok", "(unclosed"], use_regex=True))
    err = ei.value
    assert err.pattern == "(unclosed"
    assert err.source == "include"
    assert err.code == "invalid_filter"


def test_include_is_validated_before_exclude():
    with pytest.raises(InvalidPatternError) as ei:
        validate_filter_spec(FilterSpec(include=["[a-"], exclude=["(b"], use_regex=True))
    assert ei.value.source == "include"

    with pytest.raises(InvalidPatternError) as ei:
        validate_filter_spec(FilterSpec(include=["ok"], exclude=["(b"], use_regex=True))
    assert ei.value.source == "exclude"


def test_literal_mode_never_fails_validation():
    validate_filter_spec(FilterSpec(include=["(unclosed"], exclude=["[a-"]))
