"""
Catalog Schema

Store, Collection, Folio and FilterState value types shared by the
parser, normalizer, merger and filter engine.

Persistence snapshots (to_dict / from_dict) use the camelCase keys of the
stored collection document, so a snapshot written by the host application
round-trips unchanged.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

# A raw, loosely-structured store payload (form input, CSV row, enrichment result)
PartialStore = Dict[str, Any]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# === Canonical fields ===

CANONICAL_FIELDS = (
    'store_name',
    'website',
    'description',
    'country',
    'city',
    'tags',
    'price_range',
    'on_sale',
    'is_archived',
    'rating',
    'sustainability',
)

# Header / schema aliases, compared after header_key()
FIELD_ALIASES = {
    'store_name': ('name', 'store', 'storename', 'brand', 'brandname'),
    'website': ('url', 'site', 'web', 'homepage'),
    'description': ('desc', 'about'),
    'country': (),
    'city': ('town',),
    'tags': ('tag', 'categories'),
    'price_range': ('price', 'pricerange', 'pricetier'),
    'on_sale': ('sale', 'onsale'),
    'is_archived': ('archived', 'isarchived'),
    'rating': ('stars',),
    'sustainability': (),
}

MULTI_VALUE_FIELDS = frozenset({'tags'})

# snake_case field -> snapshot key
SNAPSHOT_KEYS = {
    'collection_id': 'collectionId',
    'price_range': 'priceRange',
    'on_sale': 'onSale',
    'is_archived': 'isArchived',
    'custom_fields': 'customFields',
    'added_by': 'addedBy',
    'favorited_by': 'favoritedBy',
    'private_notes': 'privateNotes',
    'image_url': 'imageUrl',
}


def header_key(text: str) -> str:
    """Case- and whitespace-insensitive key for headers and field names."""
    return re.sub(r'[\s_\-]+', '', (text or '').lower())


def resolve_field(text: str) -> Optional[str]:
    """
    Resolve a header or schema column to a canonical field name.

    Example:
        >>> resolve_field("Store Name")
        'store_name'
        >>> resolve_field("Price")
        'price_range'
    """
    key = header_key(text)
    if not key:
        return None
    for canonical in CANONICAL_FIELDS:
        if key == header_key(canonical) or key in FIELD_ALIASES[canonical]:
            return canonical
    return None


def raw_value(raw: PartialStore, name: str, default: Any = None) -> Any:
    """Read a snake_case field from a partial payload, accepting the snapshot key."""
    if name in raw:
        return raw[name]
    snapshot_key = SNAPSHOT_KEYS.get(name)
    if snapshot_key and snapshot_key in raw:
        return raw[snapshot_key]
    return default


# === Store ===

@dataclass(frozen=True)
class AddedBy:
    """Who created a store; snapshot of the display name at creation."""
    user_id: str
    user_name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"userId": self.user_id, "userName": self.user_name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddedBy":
        return cls(
            user_id=data.get("userId") or data.get("user_id") or "",
            user_name=data.get("userName") or data.get("user_name") or "",
        )


@dataclass
class PrivateNote:
    user_id: str
    text: str
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, str]:
        return {"userId": self.user_id, "text": self.text, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrivateNote":
        return cls(
            user_id=data.get("userId") or data.get("user_id") or "",
            text=data.get("text") or data.get("note") or "",
            created_at=data.get("createdAt") or data.get("created_at") or _now_iso(),
        )


@dataclass
class Store:
    """
    One catalog entry.

    Stores are built by the StoreProcessor (catalog.processor) or restored
    from a snapshot with from_dict(). A store belongs to exactly one
    collection for its lifetime; moving it is delete + recreate.

    Example:
        store = Store(
            id="3f0c...",
            collection_id="c-1",
            store_name="Acme",
            tags=["vegan"],
            price_range="mid",
        )
    """

    # === Identity ===
    id: str
    collection_id: str

    # === Descriptive ===
    store_name: str
    description: str = ""
    website: str = ""
    country: str = ""  # Localizable key
    city: str = ""     # Localizable key

    # === Classification ===
    tags: List[str] = field(default_factory=list)
    price_range: str = ""  # Bucket id or "" (unclassified)
    on_sale: bool = False
    is_archived: bool = False
    rating: float = 0.0
    sustainability: str = ""
    custom_fields: Dict[str, List[str]] = field(default_factory=dict)

    # === Provenance ===
    added_by: Optional[AddedBy] = None
    favorited_by: List[str] = field(default_factory=list)
    private_notes: List[PrivateNote] = field(default_factory=list)

    # === Media (image side channel only) ===
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a collection-document snapshot."""
        data = {
            "id": self.id,
            "collectionId": self.collection_id,
            "store_name": self.store_name,
            "description": self.description,
            "website": self.website,
            "country": self.country,
            "city": self.city,
            "tags": list(self.tags),
            "priceRange": self.price_range,
            "onSale": self.on_sale,
            "isArchived": self.is_archived,
            "rating": self.rating,
            "sustainability": self.sustainability,
            "customFields": {name: list(values) for name, values in self.custom_fields.items()},
            "addedBy": self.added_by.to_dict() if self.added_by else None,
            "favoritedBy": list(self.favorited_by),
            "privateNotes": [note.to_dict() for note in self.private_notes],
        }
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Store":
        """Restore a Store from a snapshot (no normalization applied)."""
        added_by = raw_value(data, "added_by")
        return cls(
            id=data["id"],
            collection_id=raw_value(data, "collection_id", ""),
            store_name=data.get("store_name", ""),
            description=data.get("description") or "",
            website=data.get("website") or "",
            country=data.get("country") or "",
            city=data.get("city") or "",
            tags=list(data.get("tags") or []),
            price_range=raw_value(data, "price_range") or "",
            on_sale=bool(raw_value(data, "on_sale", False)),
            is_archived=bool(raw_value(data, "is_archived", False)),
            rating=float(data.get("rating") or 0),
            sustainability=data.get("sustainability") or "",
            custom_fields={k: list(v) for k, v in (raw_value(data, "custom_fields") or {}).items()},
            added_by=AddedBy.from_dict(added_by) if added_by else None,
            favorited_by=list(raw_value(data, "favorited_by") or []),
            private_notes=[PrivateNote.from_dict(n) for n in raw_value(data, "private_notes") or []],
            image_url=raw_value(data, "image_url"),
        )


# === Templates and schema ===

@dataclass
class CustomFieldDefinition:
    name: str
    options: List[str] = field(default_factory=list)


@dataclass
class CollectionTemplate:
    """Defines the custom-field schema and default facets of a collection domain."""
    name: str
    custom_fields: List[CustomFieldDefinition] = field(default_factory=list)
    default_facets: List[str] = field(default_factory=lambda: ["tags", "on_sale", "price_range"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "customFields": [{"name": f.name, "options": list(f.options)} for f in self.custom_fields],
            "defaultFacets": list(self.default_facets),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionTemplate":
        fields_data = data.get("customFields") or data.get("custom_fields") or []
        template = cls(
            name=data.get("name", ""),
            custom_fields=[CustomFieldDefinition(f["name"], list(f.get("options", []))) for f in fields_data],
        )
        facets = data.get("defaultFacets") or data.get("default_facets")
        if facets:
            template.default_facets = list(facets)
        return template


@dataclass
class FieldSchema:
    """
    Field schema injected into every parse call.

    columns: ordered canonical columns expected in imports. Aliases are
        accepted and resolved ("name" -> "store_name").
    custom_fields: template custom-field name -> allowed options.

    An unknown canonical column is a programming error and raises ValueError.
    """
    columns: List[str] = field(default_factory=lambda: list(CANONICAL_FIELDS))
    custom_fields: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self):
        resolved = []
        for column in self.columns:
            canonical = resolve_field(column)
            if canonical is None:
                raise ValueError(f"Unknown schema column: {column!r}")
            if canonical not in resolved:
                resolved.append(canonical)
        if 'store_name' not in resolved:
            raise ValueError("Schema must include the store name column")
        self.columns = resolved

    @classmethod
    def from_template(cls, template: CollectionTemplate) -> "FieldSchema":
        return cls(
            columns=list(CANONICAL_FIELDS),
            custom_fields={f.name: list(f.options) for f in template.custom_fields},
        )


# === Collection / Folio ===

@dataclass
class Folio:
    """A named, ordered subset of a collection's stores, by reference."""
    id: str
    name: str
    theme_id: str = ""
    store_ids: List[str] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "themeId": self.theme_id,
            "storeIds": list(self.store_ids),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Folio":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            theme_id=data.get("themeId") or data.get("theme_id") or "",
            store_ids=list(data.get("storeIds") or data.get("store_ids") or []),
            created_at=data.get("createdAt") or data.get("created_at") or _now_iso(),
        )


@dataclass
class Collection:
    id: str
    owner_id: str
    name: str
    template: CollectionTemplate
    stores: List[Store] = field(default_factory=list)
    folios: List[Folio] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)

    def get_store(self, store_id: str) -> Optional[Store]:
        for store in self.stores:
            if store.id == store_id:
                return store
        return None

    @property
    def field_schema(self) -> FieldSchema:
        return FieldSchema.from_template(self.template)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "template": self.template.to_dict(),
            "stores": [store.to_dict() for store in self.stores],
            "folios": [folio.to_dict() for folio in self.folios],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        return cls(
            id=data["id"],
            owner_id=data.get("ownerId") or data.get("owner_id") or "",
            name=data.get("name", ""),
            template=CollectionTemplate.from_dict(data.get("template") or {}),
            stores=[Store.from_dict(s) for s in data.get("stores") or []],
            folios=[Folio.from_dict(f) for f in data.get("folios") or []],
            created_at=data.get("createdAt") or data.get("created_at") or _now_iso(),
        )


# === Filter state ===

@dataclass
class FilterState:
    """
    Transient per-session query. Never persisted with the collection.

    tags: AND (every tag required)
    price_ranges: OR across bucket ids
    custom_fields: AND across fields, OR within a field's options
    """
    search: str = ""
    tags: List[str] = field(default_factory=list)
    on_sale: bool = False
    price_ranges: List[str] = field(default_factory=list)
    custom_fields: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        """True when any facet constrains the result."""
        return bool(
            self.search.strip()
            or self.tags
            or self.on_sale
            or self.price_ranges
            or any(values for values in self.custom_fields.values())
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search": self.search,
            "tags": list(self.tags),
            "onSale": self.on_sale,
            "priceRanges": list(self.price_ranges),
            "customFields": {k: list(v) for k, v in self.custom_fields.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterState":
        return cls(
            search=data.get("search") or "",
            tags=list(data.get("tags") or []),
            on_sale=bool(data.get("onSale", data.get("on_sale", False))),
            price_ranges=list(data.get("priceRanges") or data.get("price_ranges") or []),
            custom_fields={k: list(v) for k, v in (data.get("customFields") or data.get("custom_fields") or {}).items()},
        )


# === Parse results ===

@dataclass
class RowError:
    row: int  # 1-based data row index, header excluded
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "reason": self.reason}


@dataclass
class ParseResult:
    records: List[PartialStore] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    truncated: bool = False
    truncated_rows: int = 0
    error: Optional[str] = None  # Top-level input-format failure

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": self.records,
            "errors": [e.to_dict() for e in self.errors],
            "truncated": self.truncated,
            "truncatedRows": self.truncated_rows,
            "error": self.error,
        }
