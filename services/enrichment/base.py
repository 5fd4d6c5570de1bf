from abc import ABC, abstractmethod

from catalog.schema import PartialStore, Store


class EnrichmentError(Exception):
    """Raised when an external source cannot produce data for a store"""
    def __init__(self, store_id: str, message: str):
        self.store_id = store_id
        super().__init__(f"{store_id}: {message}")


class EnrichmentSource(ABC):
    """Given a store, produce partial fields (website, description, ...)."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def enrich(self, store: Store) -> PartialStore:
        pass

    def health_check(self) -> bool:
        return True


class ImageGenerator(ABC):
    """Given a store, produce image bytes."""

    @abstractmethod
    def generate(self, store: Store) -> bytes:
        pass


def store_summary(store: Store) -> dict:
    """Fields sent to external providers. Private data never leaves."""
    return {
        "id": store.id,
        "store_name": store.store_name,
        "website": store.website,
        "city": store.city,
        "country": store.country,
        "tags": list(store.tags),
        "price_range": store.price_range,
    }
