"""
Facet Filter Engine

Evaluates a FilterState against a store list and returns the visible
subset in a deterministic order.

Clauses (all ANDed):
1. Search: substring of name, localized city/country, or any tag
2. Archive: store.is_archived == view_archived
3. Tags: every selected tag present (AND)
4. Sale: store.on_sale when the sale facet is set
5. Price: store's bucket in the selected buckets (OR); unclassified never matches
6. Custom fields: per field, any selected option present (OR); fields ANDed

Every call is a full scan over the given list; no index is kept.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from .price_mapper import PriceBucket, classify_price
from .schema import FilterState, Store
from .text_formatter import name_sort_key, normalize_tag

Translate = Callable[[str], str]


def _identity(key: str) -> str:
    return key


def _fold(text: str) -> str:
    return (text or "").casefold()


# === Facet predicates ===

def matches_search(store: Store, term: str, translate: Translate = _identity) -> bool:
    """term must already be trimmed and casefolded; empty matches everything."""
    if not term:
        return True
    if term in _fold(store.store_name):
        return True
    if term in _fold(translate(store.city)) or term in _fold(translate(store.country)):
        return True
    return any(term in _fold(tag) for tag in store.tags)


def matches_archive(store: Store, view_archived: bool) -> bool:
    return bool(store.is_archived) == bool(view_archived)


def matches_tags(store: Store, required: Set[str]) -> bool:
    if not required:
        return True
    return required.issubset(normalize_tag(tag) for tag in store.tags)


def matches_sale(store: Store, on_sale: bool) -> bool:
    return not on_sale or bool(store.on_sale)


def matches_price(store: Store, buckets: Set[PriceBucket]) -> bool:
    if not buckets:
        return True
    bucket = classify_price(store.price_range)
    return bucket is not None and bucket in buckets


def matches_custom_fields(store: Store, selected: Dict[str, List[str]]) -> bool:
    for field_name, options in selected.items():
        if not options:
            continue
        values = store.custom_fields.get(field_name) or []
        if not any(option in values for option in options):
            return False
    return True


@dataclass
class _CompiledFilter:
    term: str
    tags: Set[str]
    on_sale: bool
    buckets: Set[PriceBucket]
    custom_fields: Dict[str, List[str]]


def _compile(filters: FilterState) -> _CompiledFilter:
    return _CompiledFilter(
        term=_fold(filters.search.strip()),
        tags={normalize_tag(tag) for tag in filters.tags if normalize_tag(tag)},
        on_sale=bool(filters.on_sale),
        buckets={b for b in (classify_price(p) for p in filters.price_ranges) if b is not None},
        custom_fields=filters.custom_fields,
    )


def _matches(store: Store, compiled: _CompiledFilter, view_archived: bool, translate: Translate) -> bool:
    return (
        matches_search(store, compiled.term, translate)
        and matches_archive(store, view_archived)
        and matches_tags(store, compiled.tags)
        and matches_sale(store, compiled.on_sale)
        and matches_price(store, compiled.buckets)
        and matches_custom_fields(store, compiled.custom_fields)
    )


def store_matches(
    store: Store,
    filters: FilterState,
    view_archived: bool = False,
    translate: Optional[Translate] = None,
) -> bool:
    """Evaluate every facet clause for one store."""
    compiled = _compile(filters)
    if filters.price_ranges and not compiled.buckets:
        return False
    return _matches(store, compiled, view_archived, translate or _identity)


def filter_and_sort(
    stores: Iterable[Store],
    filters: FilterState,
    view_archived: bool = False,
    translate: Optional[Translate] = None,
) -> List[Store]:
    """
    Filter stores by every active facet and sort by name.

    Args:
        stores: Current store snapshot (never cached)
        filters: Session filter state (read-only)
        view_archived: Show archived stores instead of active ones
        translate: Localizes city/country keys for search

    Returns:
        Matching stores ordered by name_sort_key(store_name), then id
    """
    compiled = _compile(filters)
    # Unknown price facet values select nothing rather than everything
    if filters.price_ranges and not compiled.buckets:
        return []
    translate = translate or _identity
    matching = [s for s in stores if _matches(s, compiled, view_archived, translate)]
    return sorted(matching, key=lambda s: name_sort_key(s.store_name) + (s.id,))


# === Facet summary ===

@dataclass
class FacetSummary:
    """Option counts for building the filter sidebar."""
    total: int = 0
    on_sale: int = 0
    tags: Dict[str, int] = field(default_factory=dict)
    price_ranges: Dict[str, int] = field(default_factory=dict)
    custom_fields: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "onSale": self.on_sale,
            "tags": dict(self.tags),
            "priceRanges": dict(self.price_ranges),
            "customFields": {k: dict(v) for k, v in self.custom_fields.items()},
        }


def collect_facets(stores: Iterable[Store], view_archived: bool = False) -> FacetSummary:
    """
    Count facet options over the stores visible in the archive view.

    Tags are ordered by count (then name); price buckets in ordinal order.
    """
    tag_counts = Counter()
    bucket_counts = Counter()
    field_counts: Dict[str, Counter] = {}
    summary = FacetSummary()

    for store in stores:
        if not matches_archive(store, view_archived):
            continue
        summary.total += 1
        if store.on_sale:
            summary.on_sale += 1
        tag_counts.update(set(normalize_tag(tag) for tag in store.tags if tag))
        bucket = classify_price(store.price_range)
        if bucket is not None:
            bucket_counts[bucket] += 1
        for field_name, values in store.custom_fields.items():
            field_counts.setdefault(field_name, Counter()).update(set(values))

    summary.tags = dict(sorted(tag_counts.items(), key=lambda item: (-item[1], item[0])))
    summary.price_ranges = {b.value: bucket_counts[b] for b in PriceBucket.ordered() if bucket_counts[b]}
    summary.custom_fields = {
        name: dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))
        for name, counts in sorted(field_counts.items())
    }
    return summary
