"""
Store Processor

Main normalizer that turns a raw store payload (form input, parsed CSV
row, sample data) into a fully-populated Store.

Usage:
    processor = StoreProcessor()
    context = StoreContext(collection_id="c-1", user_id="u-1", user_name="Ana Lee")

    # Transform single store
    store = processor.transform({"store_name": "Acme", "tags": "Vegan, local"}, context)

    # Transform parsed import records
    stores = list(processor.transform_batch(result.records, context))
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from .price_mapper import is_bucket_id, price_bucket_id
from .record_parser import TRUE_VALUES
from .schema import AddedBy, PartialStore, PrivateNote, Store, raw_value
from .text_formatter import clean_name, format_description, normalize_tags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreContext:
    """Who is adding stores, and to which collection."""
    collection_id: str
    user_id: str
    user_name: str = ""

    @property
    def added_by(self) -> AddedBy:
        return AddedBy(user_id=self.user_id, user_name=clean_name(self.user_name))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _unique(values: Iterable[Any]) -> List[str]:
    result = []
    for value in values or []:
        value = _text(value)
        if value and value not in result:
            result.append(value)
    return result


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _rating(value: Any) -> float:
    try:
        rating = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    if rating != rating:  # NaN
        return 0.0
    return max(0.0, min(5.0, rating))


def _custom_fields(value: Any) -> Dict[str, List[str]]:
    if not isinstance(value, dict):
        return {}
    cleaned = {}
    for name, options in value.items():
        name = clean_name(str(name))
        if isinstance(options, str):
            options = options.split(',')
        options = _unique(clean_name(str(o)) for o in options or [])
        if name and options:
            cleaned[name] = options
    return cleaned


def _notes(value: Any) -> List[PrivateNote]:
    notes = []
    for note in value or []:
        if isinstance(note, PrivateNote):
            notes.append(note)
        elif isinstance(note, dict):
            notes.append(PrivateNote.from_dict(note))
    return notes


class StoreProcessor:
    """
    Normalizes raw store payloads into Store records.

    Pure apart from identity generation: ids come from uuid4 unless an
    id_factory is injected.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.stats = {
            'processed': 0,
            'prices_classified': 0,
            'prices_unclassified': 0,
            'tags_normalized': 0,
            'errors': 0,
        }

    def transform(self, raw: PartialStore, context: StoreContext) -> Store:
        """
        Transform a raw payload into a Store.

        Args:
            raw: Partial store payload (snake_case keys, snapshot keys accepted)
            context: Owning collection and adding user

        Returns:
            Fully-populated Store with a fresh id

        Raises:
            ValueError: if the payload has no store name
        """
        store_name = clean_name(_text(raw_value(raw, 'store_name')))
        if not store_name:
            raise ValueError("Store name is required")

        self.stats['processed'] += 1

        # Tags: lowercase + trim + dedup
        raw_tags = raw_value(raw, 'tags')
        tags = normalize_tags(raw_tags)
        if raw_tags and tags != raw_tags:
            self.stats['tags_normalized'] += 1

        # Price: classify unless already a bucket id
        raw_price = _text(raw_value(raw, 'price_range'))
        price_range = raw_price if is_bucket_id(raw_price) else price_bucket_id(raw_price)
        if raw_price:
            key = 'prices_classified' if price_range else 'prices_unclassified'
            self.stats[key] += 1

        return Store(
            id=self.id_factory(),
            collection_id=context.collection_id,
            store_name=store_name,
            description=format_description(_text(raw_value(raw, 'description'))),
            website=_text(raw_value(raw, 'website')),
            country=_text(raw_value(raw, 'country')),
            city=_text(raw_value(raw, 'city')),
            tags=tags,
            price_range=price_range,
            on_sale=_flag(raw_value(raw, 'on_sale', False)),
            is_archived=_flag(raw_value(raw, 'is_archived', False)),
            rating=_rating(raw_value(raw, 'rating')),
            sustainability=_text(raw_value(raw, 'sustainability')),
            custom_fields=_custom_fields(raw_value(raw, 'custom_fields')),
            added_by=context.added_by,
            favorited_by=_unique(raw_value(raw, 'favorited_by') or []),
            private_notes=_notes(raw_value(raw, 'private_notes')),
            image_url=None,
        )

    def transform_batch(
        self,
        raws: Iterable[PartialStore],
        context: StoreContext,
    ) -> Iterator[Store]:
        """
        Transform multiple payloads, skipping (and counting) invalid ones.

        Yields:
            Store instances
        """
        for raw in raws:
            try:
                yield self.transform(raw, context)
            except ValueError as e:
                self.stats['errors'] += 1
                logger.warning(f"Skipping store payload: {e}")
                continue

    def get_stats(self) -> Dict[str, int]:
        """Return processing statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset processing statistics."""
        for key in self.stats:
            self.stats[key] = 0


# === Convenience Functions ===

def normalize_store(raw: PartialStore, context: StoreContext) -> Store:
    """
    Convenience function to normalize a single store payload.

    Example:
        store = normalize_store(
            {'store_name': '  Acme  ', 'price_range': '$$'},
            StoreContext(collection_id='c-1', user_id='u-1', user_name='Ana'),
        )
    """
    processor = StoreProcessor()
    return processor.transform(raw, context)
