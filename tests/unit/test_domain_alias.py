"""Unit tests for alias derivation and validation."""

import pytest

from graphql_hub.domain.alias import derive_alias, normalize_alias
from graphql_hub.errors import InvalidAliasError


@pytest.mark.unit
class TestDeriveAlias:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Demo Project", "demo-project"),
            ("  Spaces   everywhere ", "spaces-everywhere"),
            ("Hello, World!", "hello-world"),
            ("snake_case_kept", "snake_case_kept"),
            ("!!", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_derivation(self, name, expected):
        assert derive_alias(name) == expected


@pytest.mark.unit
class TestNormalizeAlias:
    def test_name_derived_alias(self):
        assert normalize_alias(None, "Demo Project", "abc123") == "demo-project"

    def test_explicit_alias_wins(self):
        assert normalize_alias("custom_alias", "Demo Project", "abc123") == "custom_alias"

    def test_falls_back_to_id_when_name_has_no_word_characters(self):
        assert normalize_alias(None, "!!", "3f2a9c") == "3f2a9c"

    def test_empty_alias_is_treated_as_missing(self):
        assert normalize_alias("", "Demo", "abc123") == "demo"

    @pytest.mark.parametrize("alias", ["has space", "dash-ed", "dot.ted", "ümlaut", "demo\n", "\ndemo"])
    def test_illegal_characters(self, alias):
        with pytest.raises(InvalidAliasError) as exc_info:
            normalize_alias(alias, "Demo", "abc123")
        assert exc_info.value.message_code == "aliasIllegal"

    @pytest.mark.parametrize(("alias", "name"), [("ab", "Demo"), (None, "ab")])
    def test_too_short(self, alias, name):
        with pytest.raises(InvalidAliasError) as exc_info:
            normalize_alias(alias, name, "abc123")
        assert exc_info.value.message_code == "aliasShort"

    @pytest.mark.parametrize("alias", ["graphql", "health", "metrics", "GraphQL"])
    def test_reserved(self, alias):
        with pytest.raises(InvalidAliasError) as exc_info:
            normalize_alias(alias, "Demo", "abc123")
        assert exc_info.value.message_code == "aliasReserved"

    def test_derived_alias_can_be_reserved(self):
        with pytest.raises(InvalidAliasError) as exc_info:
            normalize_alias(None, "Health", "abc123")
        assert exc_info.value.message_code == "aliasReserved"
