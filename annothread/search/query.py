"""Parse annotation filter queries into structured representations.

Queries are Lucene-style ("foo tag:bar user:alice"). `facet:value` tokens
with a recognised facet name go to that facet; everything else, including
tokens with an unknown prefix, is free text under the `any` facet.
"""

import logging
import re

from annothread.models import FACET_NAMES, Facet, FilterSpec

logger = logging.getLogger(__name__)

POWER_SEARCH_FACETS = ("group", "quote", "since", "tag", "text", "uri", "user")

_TOKEN_RE = re.compile(r"""(?:[^\s"']+|"[^"]*"|'[^']*')+""")
_SINCE_RE = re.compile(r"^(\d+)(sec|min|hour|day|week|month|year)?$")

_SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_UNIT = {
    "sec": 1,
    "min": 60,
    "hour": 60 * 60,
    "day": _SECONDS_PER_DAY,
    "week": 7 * _SECONDS_PER_DAY,
    "month": 30 * _SECONDS_PER_DAY,
    "year": 365 * _SECONDS_PER_DAY,
}


def split_term(term: str) -> tuple[str | None, str]:
    """Split a search term into (facet, value).

    'user:johndoe' -> ('user', 'johndoe'); 'example:text' -> (None, 'example:text').
    """
    facet, sep, value = term.partition(":")
    if not sep or not facet or facet not in POWER_SEARCH_FACETS:
        return None, term
    return facet, value


def _remove_quotes(text: str) -> str:
    """Strip matching quote characters from both ends: '"a b"' -> 'a b'."""
    if len(text) >= 2 and text[0] in "\"'" and text[0] == text[-1]:
        return text[1:-1]
    return text


def tokenize(search_text: str | None) -> list[str]:
    """Split a query on whitespace, keeping quoted phrases as one token.

    Quotes around a facet value are removed too: 'tag:"foo bar"' -> 'tag:foo bar'.
    """
    if not search_text:
        return []
    tokens = [_remove_quotes(t) for t in _TOKEN_RE.findall(search_text)]
    result = []
    for token in tokens:
        facet, value = split_term(token)
        result.append(f"{facet}:{_remove_quotes(value)}" if facet else token)
    return result


def to_object(search_text: str | None) -> dict[str, list[str]]:
    """Map a query to search API parameters, e.g. {'tags': [...], 'any': [...]}."""
    result: dict[str, list[str]] = {}
    for term in tokenize(search_text):
        facet, value = split_term(term)
        if facet is None:
            facet, value = "any", term
        key = "tags" if facet == "tag" else facet
        result.setdefault(key, []).append(value)
    return result


def parse_since(value: str) -> float | None:
    """Convert '<number><unit>' to seconds; None if the value doesn't parse."""
    match = _SINCE_RE.match(value.lower())
    if match is None:
        return None
    unit = match.group(2) or "sec"
    return float(match.group(1)) * SECONDS_PER_UNIT[unit]


def generate_faceted_filter(
    search_text: str | None, focus_filters: dict[str, str] | None = None
) -> FilterSpec:
    """Parse a query into a FilterSpec, mixing in focus filter terms.

    `uri` and `user` terms are OR-ed; all other facets are AND-ed.
    """
    focus_filters = focus_filters or {}
    terms: dict[str, list[str | float]] = {name: [] for name in FACET_NAMES}
    if focus_filters.get("user"):
        terms["user"].append(focus_filters["user"])

    for term in tokenize(search_text):
        facet, value = split_term(term)
        if facet == "since":
            seconds = parse_since(value)
            if seconds is None:
                logger.debug("Ignoring unparseable since term %r", value)
            else:
                terms["since"].append(seconds)
        elif facet in terms and facet != "any":
            terms[facet].append(value)
        else:
            terms["any"].append(term)

    return {
        name: Facet(terms=values, operator="or" if name in ("uri", "user") else "and")
        for name, values in terms.items()
    }


def is_empty(filters: FilterSpec) -> bool:
    return all(not facet.terms for facet in filters.values())
