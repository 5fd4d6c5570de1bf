"""
Enrichment Runner

Fans enrichment calls out across stores concurrently and applies the
results to a collection through the fill-only merger.

- One failing store never blocks or corrupts the others
- A set cancel event abandons pending work; finished results are discarded
- Results are applied to the collection snapshot passed to apply(), so
  stores deleted while enrichment ran are simply skipped

Usage:
    runner = EnrichmentRunner(HttpEnrichmentSource())
    report = runner.run(selected_stores)
    collection = runner.apply(collection, report)
"""

import dataclasses
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from catalog.collection import set_image_url
from catalog.config import default_config
from catalog.enrichment import merge_enrichment_batch
from catalog.schema import Collection, PartialStore, Store

from .base import EnrichmentSource, ImageGenerator
from .image_client import to_data_url

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentReport:
    results: Dict[str, PartialStore] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    cancelled: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            'enriched': len(self.results),
            'failed': len(self.failures),
            'cancelled': len(self.cancelled),
        }


class EnrichmentRunner:

    def __init__(self, source: EnrichmentSource, max_workers: Optional[int] = None):
        self.source = source
        self.max_workers = max_workers or default_config.enrichment.max_workers

    def _enrich_one(self, store: Store, cancel_event: Optional[threading.Event]) -> Optional[PartialStore]:
        if cancel_event is not None and cancel_event.is_set():
            return None
        return self.source.enrich(store)

    def run(
        self,
        stores: Iterable[Store],
        cancel_event: Optional[threading.Event] = None,
    ) -> EnrichmentReport:
        """
        Enrich stores concurrently.

        Args:
            stores: Stores to enrich
            cancel_event: When set, pending calls are skipped and results
                arriving afterwards are discarded

        Returns:
            EnrichmentReport with per-store payloads and failures
        """
        report = EnrichmentReport()
        stores = list(stores)
        if not stores:
            return report

        logger.info(f"Enriching {len(stores)} stores via {self.source.name}")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._enrich_one, store, cancel_event): store for store in stores}

            for future in as_completed(futures):
                store = futures[future]

                if cancel_event is not None and cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    report.cancelled.append(store.id)
                    continue

                try:
                    payload = future.result()
                except Exception as e:
                    logger.warning(f"Enrichment failed for {store.store_name!r}: {e}")
                    report.failures[store.id] = str(e)
                    continue

                if payload is None:
                    report.cancelled.append(store.id)
                elif payload:
                    report.results[store.id] = payload

        logger.info(f"Enrichment finished: {report.summary()}")
        return report

    @staticmethod
    def apply(collection: Collection, report: EnrichmentReport) -> Collection:
        """Merge report results into the collection, fill-only."""
        if not report.results:
            return collection
        stores = merge_enrichment_batch(collection.stores, report.results)
        return dataclasses.replace(collection, stores=stores)

    def enrich_collection(
        self,
        collection: Collection,
        store_ids: Optional[Iterable[str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Collection:
        """Enrich the selected stores (all when store_ids is None) and apply."""
        selected = set(store_ids) if store_ids is not None else None
        targets = [s for s in collection.stores if selected is None or s.id in selected]
        report = self.run(targets, cancel_event)
        return self.apply(collection, report)


def apply_generated_image(collection: Collection, store_id: str, generator: ImageGenerator) -> Collection:
    """
    Generate and attach a store image.

    Failures are logged and leave the collection unchanged.
    """
    store = collection.get_store(store_id)
    if store is None:
        logger.warning(f"Image requested for unknown store {store_id}")
        return collection

    try:
        image = generator.generate(store)
    except Exception as e:
        logger.error(f"Image generation failed for {store.store_name!r}: {e}")
        return collection

    return set_image_url(collection, store_id, to_data_url(image))
