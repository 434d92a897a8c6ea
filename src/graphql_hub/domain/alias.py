"""Alias validation and derivation for new projects."""

from __future__ import annotations

import re

from graphql_hub.errors import InvalidAliasError


MIN_ALIAS_LENGTH = 3
RESERVED_ALIASES: frozenset[str] = frozenset({"graphql", "health", "metrics"})

_WORD_ONLY = re.compile(r"\w+", re.ASCII)
_NON_WORD_RUN = re.compile(r"\W+", re.ASCII)


def derive_alias(name: str | None) -> str:
    """Turn a display name into a url-safe slug ("Demo Project" -> "demo-project")."""
    if not name:
        return ""
    return _NON_WORD_RUN.sub("-", name.lower()).strip("-")


def normalize_alias(alias: str | None, name: str | None, fallback_id: str) -> str:
    """Return the alias a new project will be stored and routed under.

    An explicit alias must consist of word characters only. Without one, the
    alias is derived from ``name``; an empty derivation falls back to the
    generated project id.

    Raises:
        InvalidAliasError: with code ``aliasIllegal``, ``aliasShort`` or
            ``aliasReserved``.
    """
    if alias:
        if not _WORD_ONLY.fullmatch(alias):
            raise InvalidAliasError(
                "Alias may only contain letters, digits and underscores",
                message_code="aliasIllegal",
            )
        candidate = alias
    else:
        candidate = derive_alias(name) or fallback_id

    if len(candidate) < MIN_ALIAS_LENGTH:
        raise InvalidAliasError(
            f"Alias must be at least {MIN_ALIAS_LENGTH} characters long",
            message_code="aliasShort",
        )
    if candidate.lower() in RESERVED_ALIASES:
        raise InvalidAliasError(f"Alias '{candidate}' is reserved", message_code="aliasReserved")
    return candidate
