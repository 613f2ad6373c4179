"""Client-side matching of annotations against a FilterSpec.

A record matches iff every non-empty facet matches. Within a facet, terms
are combined with the facet's operator. String matching is case-insensitive
substring containment.
"""

from collections.abc import Callable
from datetime import UTC, datetime

from annothread.models import AnnotationRecord, Facet, FilterSpec


def quote(annotation: AnnotationRecord) -> str | None:
    """The exact text an annotation refers to, if it has a quote selector."""
    if not annotation.target:
        return None
    for selector in annotation.target[0].selector or []:
        if selector.type == "TextQuoteSelector":
            return selector.exact
    return None


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _user_values(annotation: AnnotationRecord) -> list[str]:
    values = []
    if annotation.user:
        values.append(annotation.user)
        # "acct:alice@example.com" -> also match on "alice"
        username = annotation.user.removeprefix("acct:").split("@")[0]
        if username != annotation.user:
            values.append(username)
    if annotation.user_info and annotation.user_info.display_name:
        values.append(annotation.user_info.display_name)
    return values


def _field_values(annotation: AnnotationRecord, facet: str) -> list[str]:
    if facet == "quote":
        q = quote(annotation)
        return [q] if q else []
    if facet == "tag":
        return list(annotation.tags)
    if facet == "text":
        return [annotation.text] if annotation.text else []
    if facet == "uri":
        return [annotation.uri] if annotation.uri else []
    if facet == "user":
        return _user_values(annotation)
    return []


def _matches_text(values: list[str], term: str) -> bool:
    needle = term.lower()
    return any(needle in value.lower() for value in values)


def _term_matches(
    annotation: AnnotationRecord, facet: str, term: str | float, now: datetime
) -> bool:
    if facet == "since":
        created = _parse_timestamp(annotation.created)
        if created is None:
            return False
        return (now - created).total_seconds() <= float(term)
    if facet == "any":
        return any(
            _matches_text(_field_values(annotation, field), str(term))
            for field in ("quote", "text", "tag", "uri", "user")
        )
    return _matches_text(_field_values(annotation, facet), str(term))


def _facet_matches(
    annotation: AnnotationRecord, name: str, facet: Facet, now: datetime
) -> bool:
    results = (_term_matches(annotation, name, term, now) for term in facet.terms)
    return any(results) if facet.operator == "or" else all(results)


def matches(
    annotation: AnnotationRecord, filters: FilterSpec, now: datetime | None = None
) -> bool:
    now = now or datetime.now(UTC)
    return all(
        _facet_matches(annotation, name, facet, now)
        for name, facet in filters.items()
        if facet.terms
    )


def filter_annotations(
    annotations: list[AnnotationRecord],
    filters: FilterSpec,
    now: datetime | None = None,
) -> list[AnnotationRecord]:
    """Return the annotations matching `filters`, in input order."""
    now = now or datetime.now(UTC)
    return [a for a in annotations if matches(a, filters, now)]


def make_filter_fn(
    filters: FilterSpec, now: datetime | None = None
) -> Callable[[AnnotationRecord], bool]:
    """Bind `filters` into a per-annotation predicate for `build_thread`."""
    return lambda annotation: matches(annotation, filters, now)
