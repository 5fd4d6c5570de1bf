"""
External enrichment and image generation.

Sources are opaque providers; their results reach the catalog only
through catalog.enrichment.merge_enrichment().
"""

from .base import EnrichmentError, EnrichmentSource, ImageGenerator
from .http_source import HttpEnrichmentSource, WebsiteMetadataSource
from .image_client import HttpImageGenerator, to_data_url
from .retry import RetryExhausted, RetryHandler
from .runner import EnrichmentReport, EnrichmentRunner, apply_generated_image
from .stub import StaticEnrichmentSource, StaticImageGenerator

__all__ = [
    'EnrichmentError',
    'EnrichmentSource',
    'ImageGenerator',
    'HttpEnrichmentSource',
    'WebsiteMetadataSource',
    'HttpImageGenerator',
    'to_data_url',
    'RetryExhausted',
    'RetryHandler',
    'EnrichmentReport',
    'EnrichmentRunner',
    'apply_generated_image',
    'StaticEnrichmentSource',
    'StaticImageGenerator',
]
