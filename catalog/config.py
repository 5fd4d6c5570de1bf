"""
Catalog Configuration

Central configuration for import limits, parsing and enrichment.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class LimitsConfig:
    """Capacity limits enforced at the import/add/enrichment boundary"""
    max_stores_per_collection: int = 500
    max_collections_per_user: int = 10
    max_folios_per_collection: int = 50


@dataclass
class ImportConfig:
    """Tabular import settings"""
    delimiter: str = ","          # Column delimiter
    multi_value_delimiter: str = ","  # Tags / custom field cells
    batch_size: int = 200         # Rows per parse_batch() call


@dataclass
class RetryConfig:
    """Retry settings for external enrichment calls"""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 20.0
    jitter: str = "full"  # "full", "equal", "none"

    # Status codes that trigger retry
    retryable_codes: Tuple[int, ...] = (429, 500, 502, 503, 504)


@dataclass
class EnrichmentConfig:
    """External enrichment / image generation settings"""
    endpoint: str = ""
    image_endpoint: str = ""
    api_key: str = ""
    user_agent: str = "FolioCatalog/1.0"
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_workers: int = 4
    retry: RetryConfig = field(default_factory=RetryConfig)

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass
class CatalogConfig:
    """Main catalog configuration"""
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CatalogConfig":
        """
        Build configuration from CATALOG_* environment variables.

        Unset variables keep their defaults.
        """
        config = cls()
        max_stores = os.getenv("CATALOG_MAX_STORES")
        if max_stores:
            config.limits.max_stores_per_collection = int(max_stores)
        batch_size = os.getenv("CATALOG_IMPORT_BATCH_SIZE")
        if batch_size:
            config.imports.batch_size = int(batch_size)
        config.enrichment.endpoint = os.getenv("CATALOG_ENRICHMENT_URL", config.enrichment.endpoint)
        config.enrichment.image_endpoint = os.getenv("CATALOG_IMAGE_URL", config.enrichment.image_endpoint)
        config.enrichment.api_key = os.getenv("CATALOG_API_KEY", config.enrichment.api_key)
        workers = os.getenv("CATALOG_ENRICHMENT_WORKERS")
        if workers:
            config.enrichment.max_workers = int(workers)
        config.log_level = os.getenv("CATALOG_LOG_LEVEL", config.log_level).upper()
        return config


# Default configuration instance
default_config = CatalogConfig()
