"""
Folio Catalog Core

Import normalization and facet filtering for curated store collections.
Shared by every entry point: manual add, CSV import, external enrichment
and the search bar.

Key Components:
- Store / Collection / Folio / FilterState: Value types
- text_formatter: Name keys, deterministic sort, description formatting
- price_mapper: Price text -> low / mid / high / ultra bucket
- RecordParser: CSV ingestion with per-row error collection
- StoreProcessor: Raw payload -> canonical Store
- merge_enrichment: Fill-only overlay of enrichment results
- filter_and_sort: Multi-facet filtering with stable name ordering
"""

from .schema import (
    AddedBy,
    Collection,
    CollectionTemplate,
    CustomFieldDefinition,
    FieldSchema,
    FilterState,
    Folio,
    ParseResult,
    PartialStore,
    PrivateNote,
    RowError,
    Store,
)
from .text_formatter import (
    clean_name,
    compare_names,
    format_description,
    name_sort_key,
    normalize_name,
    normalize_tags,
)
from .price_mapper import PriceBucket, classify_price, price_bucket_id
from .record_parser import RecordParser, parse_tabular
from .processor import StoreContext, StoreProcessor, normalize_store
from .enrichment import EMPTY_SENTINELS, merge_enrichment, merge_enrichment_batch
from .filters import FacetSummary, collect_facets, filter_and_sort
from .localization import Localizer

__all__ = [
    # Schema
    'AddedBy',
    'Collection',
    'CollectionTemplate',
    'CustomFieldDefinition',
    'FieldSchema',
    'FilterState',
    'Folio',
    'ParseResult',
    'PartialStore',
    'PrivateNote',
    'RowError',
    'Store',

    # Text
    'clean_name',
    'compare_names',
    'format_description',
    'name_sort_key',
    'normalize_name',
    'normalize_tags',

    # Price buckets
    'PriceBucket',
    'classify_price',
    'price_bucket_id',

    # Import
    'RecordParser',
    'parse_tabular',

    # Normalization
    'StoreContext',
    'StoreProcessor',
    'normalize_store',

    # Enrichment
    'EMPTY_SENTINELS',
    'merge_enrichment',
    'merge_enrichment_batch',

    # Filtering
    'FacetSummary',
    'collect_facets',
    'filter_and_sort',

    # Localization
    'Localizer',
]
