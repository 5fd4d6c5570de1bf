"""
Image Generation Client

Produces a store image through an external generation endpoint. The
endpoint receives a prompt and answers {"image": "<base64 PNG>"}.
"""

import base64
import binascii
import logging
from typing import Optional

import requests

from catalog.config import EnrichmentConfig, default_config
from catalog.schema import Store

from .base import EnrichmentError, ImageGenerator
from .http_source import build_session
from .retry import RetryHandler

logger = logging.getLogger(__name__)


def build_prompt(store: Store) -> str:
    """Describe the store for the image model."""
    parts = [f"An aesthetic editorial photograph representing the brand {store.store_name}"]
    if store.tags:
        parts.append(f"style: {', '.join(store.tags[:5])}")
    if store.city:
        parts.append(f"inspired by {store.city}")
    return "; ".join(parts)


def to_data_url(image: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


class HttpImageGenerator(ImageGenerator):

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or default_config.enrichment
        if not self.config.image_endpoint:
            raise ValueError("Image endpoint is not configured (CATALOG_IMAGE_URL)")
        self.session = session or build_session(self.config)
        self.retry = RetryHandler(self.config.retry)

    def _post(self, prompt: str) -> dict:
        response = self.session.post(
            self.config.image_endpoint,
            json={"prompt": prompt},
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json()

    def generate(self, store: Store) -> bytes:
        try:
            data = self.retry.execute(self._post, build_prompt(store))
        except Exception as e:
            raise EnrichmentError(store.id, f"image request failed: {e}") from e

        encoded = data.get("image") if isinstance(data, dict) else None
        if not encoded:
            raise EnrichmentError(store.id, "image response has no image data")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EnrichmentError(store.id, f"image data is not valid base64: {e}") from e
