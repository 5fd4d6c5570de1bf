"""
Folio Operations

Folios reference stores by id. Membership is not ownership: a store can
sit in any number of folios, and ids of deleted stores are tolerated
(skipped when the folio is resolved).
"""

import dataclasses
import uuid
from typing import Callable, Iterable, List, Optional

from .config import default_config
from .schema import Collection, Folio, Store


def _unique(ids: Iterable[str]) -> List[str]:
    result = []
    for store_id in ids:
        if store_id and store_id not in result:
            result.append(store_id)
    return result


def get_folio(collection: Collection, folio_id: str) -> Folio:
    for folio in collection.folios:
        if folio.id == folio_id:
            return folio
    raise KeyError(f"Folio not found: {folio_id}")


def _update_folio(collection: Collection, folio_id: str, update: Callable[[Folio], Folio]) -> Collection:
    get_folio(collection, folio_id)
    folios = [update(f) if f.id == folio_id else f for f in collection.folios]
    return dataclasses.replace(collection, folios=folios)


def create_folio(
    collection: Collection,
    name: str,
    theme_id: str = "",
    max_folios: Optional[int] = None,
) -> Collection:
    limit = max_folios if max_folios is not None else default_config.limits.max_folios_per_collection
    if len(collection.folios) >= limit:
        raise ValueError(f"Collection {collection.id} already has {limit} folios")
    folio = Folio(id=str(uuid.uuid4()), name=' '.join(name.split()), theme_id=theme_id)
    return dataclasses.replace(collection, folios=collection.folios + [folio])


def delete_folio(collection: Collection, folio_id: str) -> Collection:
    get_folio(collection, folio_id)
    return dataclasses.replace(collection, folios=[f for f in collection.folios if f.id != folio_id])


def add_to_folio(collection: Collection, folio_id: str, store_id: str) -> Collection:
    """Add one store; duplicates are suppressed."""
    return bulk_add_to_folio(collection, folio_id, [store_id])


def bulk_add_to_folio(collection: Collection, folio_id: str, store_ids: Iterable[str]) -> Collection:
    store_ids = list(store_ids)
    return _update_folio(
        collection, folio_id,
        lambda f: dataclasses.replace(f, store_ids=_unique(f.store_ids + store_ids)),
    )


def remove_from_folio(collection: Collection, folio_id: str, store_id: str) -> Collection:
    return _update_folio(
        collection, folio_id,
        lambda f: dataclasses.replace(f, store_ids=[sid for sid in f.store_ids if sid != store_id]),
    )


def clear_folio(collection: Collection, folio_id: str) -> Collection:
    return _update_folio(collection, folio_id, lambda f: dataclasses.replace(f, store_ids=[]))


def sync_folio(collection: Collection, folio_id: str, store_ids: Iterable[str]) -> Collection:
    """Replace a folio's membership (e.g. after reordering)."""
    store_ids = _unique(store_ids)
    return _update_folio(collection, folio_id, lambda f: dataclasses.replace(f, store_ids=store_ids))


def resolve_folio_stores(collection: Collection, folio_id: str) -> List[Store]:
    """Stores of a folio in folio order; orphaned ids are skipped."""
    folio = get_folio(collection, folio_id)
    by_id = {store.id: store for store in collection.stores}
    return [by_id[sid] for sid in folio.store_ids if sid in by_id]
