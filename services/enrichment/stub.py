"""
Deterministic enrichment and image stubs for tests and offline runs.
"""

from typing import Dict, Iterable, Optional

from catalog.schema import PartialStore, Store

from .base import EnrichmentError, EnrichmentSource, ImageGenerator


class StaticEnrichmentSource(EnrichmentSource):
    """
    Returns canned payloads keyed by store id.

    Ids listed in `failing` raise EnrichmentError; unknown ids return {}.
    """

    def __init__(self, payloads: Dict[str, PartialStore], failing: Optional[Iterable[str]] = None):
        self.payloads = payloads
        self.failing = set(failing or [])
        self.calls = []

    @property
    def name(self) -> str:
        return "static"

    def enrich(self, store: Store) -> PartialStore:
        self.calls.append(store.id)
        if store.id in self.failing:
            raise EnrichmentError(store.id, "stub failure")
        return dict(self.payloads.get(store.id, {}))


class StaticImageGenerator(ImageGenerator):

    def __init__(self, image: bytes = b"\x89PNG\r\n\x1a\n", failing: Optional[Iterable[str]] = None):
        self.image = image
        self.failing = set(failing or [])

    def generate(self, store: Store) -> bytes:
        if store.id in self.failing:
            raise EnrichmentError(store.id, "stub failure")
        return self.image
