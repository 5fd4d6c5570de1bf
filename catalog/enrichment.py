"""
Enrichment Merger

Overlays externally-sourced fields onto existing stores without ever
overwriting user-authored content.

Rules:
1. An enriched value is accepted only if the existing field is empty
2. Accepted descriptions pass through format_description()
3. Accepted websites are written verbatim
4. No other field is touched

"Empty" per field:
- website: blank, or one of EMPTY_SENTINELS (case-insensitive, trimmed)
- description: blank, shorter than MIN_DESCRIPTION_LENGTH, or a sentinel
"""

import dataclasses
import logging
from typing import Dict, Iterable, List, Optional

from .schema import PartialStore, Store
from .text_formatter import format_description

logger = logging.getLogger(__name__)

# Values users type to mean "no value". Membership affects merge outcomes;
# keep it exact.
EMPTY_SENTINELS = frozenset({"none", "n/a", "na", "false"})

MIN_DESCRIPTION_LENGTH = 10


def _is_sentinel(value: str) -> bool:
    return value.strip().lower() in EMPTY_SENTINELS


def is_website_empty(value: Optional[str]) -> bool:
    if not value or not value.strip():
        return True
    return _is_sentinel(value)


def is_description_empty(value: Optional[str]) -> bool:
    if not value or not value.strip():
        return True
    if len(value.strip()) < MIN_DESCRIPTION_LENGTH:
        return True
    return _is_sentinel(value)


def _enriched_text(enriched: PartialStore, name: str) -> Optional[str]:
    value = enriched.get(name)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def merge_enrichment(existing: Store, enriched: PartialStore) -> Store:
    """
    Merge an enrichment payload into a store, fill-only.

    Args:
        existing: Current store
        enriched: Partial payload from the enrichment source

    Returns:
        New Store; `existing` is not modified
    """
    updates = {}

    website = _enriched_text(enriched, 'website')
    if website is not None and is_website_empty(existing.website):
        updates['website'] = website

    description = _enriched_text(enriched, 'description')
    if description is not None and is_description_empty(existing.description):
        # Markup-only text formats to ""
        description = format_description(description)
        if description:
            updates['description'] = description

    if not updates:
        return existing

    logger.debug(f"Enriched {existing.id}: {', '.join(sorted(updates))}")
    return dataclasses.replace(existing, **updates)


def merge_enrichment_batch(
    stores: Iterable[Store],
    enriched_by_id: Dict[str, PartialStore],
) -> List[Store]:
    """
    Merge enrichment results into a store list.

    Each store is merged independently. Stores without an entry in
    enriched_by_id pass through unchanged.
    """
    merged = []
    for store in stores:
        enriched = enriched_by_id.get(store.id)
        merged.append(merge_enrichment(store, enriched) if enriched else store)
    return merged
