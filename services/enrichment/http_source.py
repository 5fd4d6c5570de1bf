#!/usr/bin/env python3
"""
HTTP Enrichment Sources

Two ways to fill missing website/description fields:

- HttpEnrichmentSource: POST the store summary to a JSON enrichment
  endpoint, which answers {"website": ..., "description": ...}
- WebsiteMetadataSource: fetch the store's own website and read its
  <meta name="description"> / og:description

Results are partial payloads only; they reach the catalog exclusively
through catalog.enrichment.merge_enrichment().
"""

import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from catalog.config import EnrichmentConfig, default_config
from catalog.enrichment import is_website_empty
from catalog.schema import PartialStore, Store

from .base import EnrichmentError, EnrichmentSource, store_summary
from .retry import RetryHandler

logger = logging.getLogger(__name__)


def build_session(config: EnrichmentConfig) -> requests.Session:
    session = requests.Session()
    session.headers.update({
        'User-Agent': config.user_agent,
        'Accept': 'application/json, text/html;q=0.9',
    })
    if config.api_key:
        session.headers['Authorization'] = f"Bearer {config.api_key}"
    return session


class HttpEnrichmentSource(EnrichmentSource):
    """
    Client for a JSON enrichment endpoint.

    The endpoint receives the public store summary and returns any subset
    of {"website", "description"}.
    """

    FIELDS = ('website', 'description')

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or default_config.enrichment
        if not self.config.endpoint:
            raise ValueError("Enrichment endpoint is not configured (CATALOG_ENRICHMENT_URL)")
        self.session = session or build_session(self.config)
        self.retry = RetryHandler(self.config.retry)
        self.stats = {
            'requests': 0,
            'enriched': 0,
            'errors': 0,
        }

    @property
    def name(self) -> str:
        return "http"

    def _post(self, store: Store) -> dict:
        self.stats['requests'] += 1
        response = self.session.post(
            self.config.endpoint,
            json=store_summary(store),
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json()

    def enrich(self, store: Store) -> PartialStore:
        try:
            data = self.retry.execute(self._post, store)
        except Exception as e:
            self.stats['errors'] += 1
            raise EnrichmentError(store.id, f"enrichment request failed: {e}") from e

        if not isinstance(data, dict):
            self.stats['errors'] += 1
            raise EnrichmentError(store.id, "enrichment response is not a JSON object")

        result = {k: data[k] for k in self.FIELDS if isinstance(data.get(k), str) and data[k].strip()}
        if result:
            self.stats['enriched'] += 1
        return result


class WebsiteMetadataSource(EnrichmentSource):
    """
    Reads the description a store publishes on its own website.

    Stores without a usable website produce an empty payload.
    """

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or default_config.enrichment
        self.session = session or build_session(self.config)
        self.retry = RetryHandler(self.config.retry)

    @property
    def name(self) -> str:
        return "website"

    @staticmethod
    def normalize_url(url: str) -> str:
        url = url.strip()
        if not url.startswith(('http://', 'https://')):
            url = "https://" + url
        return url

    @staticmethod
    def extract_description(html: str) -> Optional[str]:
        """Pull the page description from meta tags."""
        soup = BeautifulSoup(html, 'html.parser')
        for attrs in ({'name': 'description'}, {'property': 'og:description'}, {'name': 'twitter:description'}):
            tag = soup.find('meta', attrs=attrs)
            if tag and tag.get('content', '').strip():
                return tag['content'].strip()
        return None

    def _fetch(self, url: str) -> str:
        response = self.session.get(url, timeout=self.config.timeout)
        response.raise_for_status()
        return response.text

    def enrich(self, store: Store) -> PartialStore:
        if is_website_empty(store.website):
            return {}

        url = self.normalize_url(store.website)
        try:
            html = self.retry.execute(self._fetch, url)
        except Exception as e:
            raise EnrichmentError(store.id, f"could not fetch {url}: {e}") from e

        description = self.extract_description(html)
        if not description:
            logger.info(f"No description metadata on {url}")
            return {}
        return {'description': description}
