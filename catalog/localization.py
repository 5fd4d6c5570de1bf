"""
Localization

Resolves localizable string keys (country, city, UI labels) to display
text. Unknown keys fall back to the key itself.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class Localizer:
    """
    Key -> text lookup used as the `translate` callable of the filter engine.

    Example:
        t = Localizer({"city.paris": "Paris"})
        t("city.paris")   # 'Paris'
        t("Lisbon")       # 'Lisbon'
    """

    def __init__(self, messages: Optional[Dict[str, str]] = None):
        self.messages = dict(messages or {})

    def translate(self, key: str) -> str:
        if not key:
            return ""
        return self.messages.get(key, key)

    __call__ = translate

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "Localizer":
        """Load a flat {key: text} JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            messages = json.load(f)
        if not isinstance(messages, dict):
            raise ValueError(f"{path}: expected a JSON object of messages")
        logger.info(f"Loaded {len(messages)} messages from {path}")
        return cls({str(k): str(v) for k, v in messages.items()})
