"""
Collection Operations

Explicit, pure operations over Collection values. Each returns a new
Collection; inputs are never modified. The store cap is enforced here,
at the add/import boundary, not in the filter engine.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config import default_config
from .processor import StoreContext, StoreProcessor
from .schema import Collection, CollectionTemplate, Store

logger = logging.getLogger(__name__)

IMPORT_MODES = ('import', 'append')


def _cap(max_stores: Optional[int]) -> int:
    return max_stores if max_stores is not None else default_config.limits.max_stores_per_collection


def create_collection(owner_id: str, name: str, template: CollectionTemplate) -> Collection:
    return Collection(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        name=name,
        template=template,
    )


def add_store(
    collection: Collection,
    store: Store,
    max_stores: Optional[int] = None,
) -> Tuple[Collection, bool]:
    """
    Append a store if the collection is below its cap.

    Returns:
        (collection, accepted)
    """
    if store.collection_id != collection.id:
        raise ValueError(f"Store {store.id} belongs to collection {store.collection_id}")
    if len(collection.stores) >= _cap(max_stores):
        logger.warning(f"Collection {collection.id} is full; store {store.store_name!r} not added")
        return collection, False
    return dataclasses.replace(collection, stores=collection.stores + [store]), True


@dataclass
class ImportOutcome:
    collection: Collection
    added: int
    dropped: int


def import_stores(
    collection: Collection,
    stores: List[Store],
    mode: str = 'append',
    max_stores: Optional[int] = None,
) -> ImportOutcome:
    """
    Add imported stores to a collection.

    mode 'import' replaces the existing stores, 'append' extends them.
    The combined list is truncated to the cap; the accepted prefix is kept
    and the overflow reported in `dropped`.
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode: {mode!r}")

    base = [] if mode == 'import' else list(collection.stores)
    combined = base + list(stores)
    cap = _cap(max_stores)
    kept = combined[:cap]
    dropped = len(combined) - len(kept)
    added = len(kept) - len(base)

    if dropped:
        logger.warning(f"Collection {collection.id}: {dropped} stores over the {cap} store limit were not imported")
    logger.info(f"Collection {collection.id}: {mode} added {max(added, 0)} stores")

    updated = dataclasses.replace(collection, stores=kept)
    return ImportOutcome(collection=updated, added=max(added, 0), dropped=dropped)


def _replace_store(collection: Collection, store_id: str, **changes) -> Collection:
    if collection.get_store(store_id) is None:
        raise KeyError(f"Store not found: {store_id}")
    stores = [
        dataclasses.replace(s, **changes) if s.id == store_id else s
        for s in collection.stores
    ]
    return dataclasses.replace(collection, stores=stores)


def update_store(collection: Collection, store: Store) -> Collection:
    """Replace a store by id. Identity and ownership cannot change."""
    current = collection.get_store(store.id)
    if current is None:
        raise KeyError(f"Store not found: {store.id}")
    if store.collection_id != current.collection_id:
        raise ValueError("collection_id is immutable; use move_store()")
    if store.added_by != current.added_by:
        raise ValueError("added_by is immutable")
    stores = [store if s.id == store.id else s for s in collection.stores]
    return dataclasses.replace(collection, stores=stores)


def set_archived(collection: Collection, store_id: str, archived: bool) -> Collection:
    return _replace_store(collection, store_id, is_archived=archived)


def set_image_url(collection: Collection, store_id: str, image_url: str) -> Collection:
    return _replace_store(collection, store_id, image_url=image_url)


def clear_stores(collection: Collection) -> Collection:
    return dataclasses.replace(collection, stores=[])


def prune_folio_references(collection: Collection, store_ids: Iterable[str]) -> Collection:
    """Remove the given store ids from every folio."""
    removed = set(store_ids)
    folios = [
        dataclasses.replace(f, store_ids=[sid for sid in f.store_ids if sid not in removed])
        for f in collection.folios
    ]
    return dataclasses.replace(collection, folios=folios)


def delete_stores(
    collection: Collection,
    store_ids: Iterable[str],
    cascade_folios: bool = False,
) -> Collection:
    """
    Delete stores by id.

    Folio references are left alone unless cascade_folios is set; orphaned
    references are tolerated and skipped when folios are resolved.
    """
    removed = set(store_ids)
    updated = dataclasses.replace(
        collection,
        stores=[s for s in collection.stores if s.id not in removed],
    )
    if cascade_folios:
        updated = prune_folio_references(updated, removed)
    return updated


def move_store(
    source: Collection,
    target: Collection,
    store_id: str,
    context: StoreContext,
    processor: Optional[StoreProcessor] = None,
    max_stores: Optional[int] = None,
) -> Tuple[Collection, Collection, Optional[Store]]:
    """
    Move a store between collections as delete + recreate.

    The recreated store gets a fresh id and the target's collection_id;
    descriptive and classification fields are carried over.

    Returns:
        (source, target, new_store); unchanged inputs and None when the
        target is full
    """
    store = source.get_store(store_id)
    if store is None:
        raise KeyError(f"Store not found: {store_id}")
    if context.collection_id != target.id:
        raise ValueError("context.collection_id must be the target collection")

    processor = processor or StoreProcessor()
    new_store = dataclasses.replace(
        processor.transform(store.to_dict(), context),
        added_by=store.added_by or context.added_by,
        image_url=store.image_url,
    )
    target, accepted = add_store(target, new_store, max_stores)
    if not accepted:
        return source, target, None

    source = delete_stores(source, [store_id], cascade_folios=True)
    return source, target, new_store
