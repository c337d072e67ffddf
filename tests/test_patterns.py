"""Tests for allowlist pattern matching."""

import pytest
from noticeguard.domain.models import PatternType
from noticeguard.notices.patterns import PatternMatcher, compile_regex, is_valid_pattern


@pytest.fixture
def matcher():
    return PatternMatcher()


class TestExact:
    @pytest.mark.parametrize("name", ["rocket_bad_deactivations", "", "Foo::bar", "a*b", "^x$"])
    def test_matches_itself(self, matcher, name):
        assert matcher.matches(name, name, PatternType.exact)

    def test_case_sensitive(self, matcher):
        assert not matcher.matches("Rocket_notice", "rocket_notice", "exact")

    def test_no_partial_match(self, matcher):
        assert not matcher.matches("rocket_notice_extra", "rocket_notice", "exact")


class TestWildcard:
    @pytest.mark.parametrize("name", ["a", "rocket_notice", "Foo::bar", "with\nnewline"])
    def test_star_matches_anything(self, matcher, name):
        assert matcher.matches(name, "*", PatternType.wildcard)

    def test_prefix(self, matcher):
        assert matcher.matches("rocket_notice", "rocket_*", PatternType.wildcard)
        assert not matcher.matches("my_rocket_notice", "rocket_*", PatternType.wildcard)

    def test_star_matches_empty(self, matcher):
        assert matcher.matches("rocket_", "rocket_*", PatternType.wildcard)

    def test_infix_and_suffix(self, matcher):
        assert matcher.matches("WC_Admin::notice", "WC_*::notice", "wildcard")
        assert matcher.matches("my_rocket_notice", "*_notice", "wildcard")
        assert not matcher.matches("my_rocket_notices", "*_notice", "wildcard")

    def test_other_characters_are_literal(self, matcher):
        assert matcher.matches("a.b", "a.*", "wildcard")
        assert not matcher.matches("axb", "a.b*", "wildcard")
        assert matcher.matches("a+b(c)", "a+b(*)", "wildcard")

    def test_without_star_behaves_as_exact(self, matcher):
        assert matcher.matches("rocket_notice", "rocket_notice", "wildcard")
        assert not matcher.matches("rocket_notice2", "rocket_notice", "wildcard")

    def test_server_side_is_case_sensitive(self, matcher):
        assert not matcher.matches("Rocket_notice", "rocket_*", "wildcard")

    def test_client_variant_is_case_insensitive(self):
        client = PatternMatcher(case_sensitive_wildcards=False)
        assert client.matches("Rocket_notice", "rocket_*", "wildcard")


class TestRegex:
    def test_search_semantics(self, matcher):
        assert matcher.matches("rocket_notice", "^rocket_.*$", PatternType.regex)
        assert matcher.matches("my_rocket_notice", "rocket", PatternType.regex)
        assert not matcher.matches("other", "^rocket", PatternType.regex)

    def test_delimited_form_with_flags(self, matcher):
        assert matcher.matches("Rocket_Notice", "/^rocket_/i", "regex")
        assert not matcher.matches("Rocket_Notice", "/^rocket_/", "regex")
        assert matcher.matches("WC::notice", "#^WC::#", "regex")

    @pytest.mark.parametrize(
        "pattern",
        ["/[unterminated", "[unterminated", "(", "*bad", "", "a{4294967296}", "/a{4294967296}/i"],
    )
    def test_invalid_pattern_never_raises(self, matcher, pattern):
        assert matcher.matches("anything", pattern, PatternType.regex) is False

    def test_validity_predicate(self):
        assert is_valid_pattern("^rocket_.*$")
        assert is_valid_pattern("/^rocket/i")
        assert not is_valid_pattern("/[unterminated")
        assert not is_valid_pattern("a{4294967296}")
        assert not is_valid_pattern("")
        assert PatternMatcher.is_valid_pattern("a|b")

    def test_compiled_patterns_are_reused(self):
        assert compile_regex("^reuse$") is compile_regex("^reuse$")


def test_unknown_type_never_matches(matcher):
    assert not matcher.matches("rocket_notice", "rocket_notice", "glob")
