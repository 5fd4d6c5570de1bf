"""
Folio Catalog API - Import, normalization and filtering endpoints.
Stateless: every request carries the stores it operates on.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from catalog import (
    FieldSchema,
    FilterState,
    Store,
    StoreContext,
    StoreProcessor,
    classify_price,
    collect_facets,
    filter_and_sort,
    merge_enrichment,
    parse_tabular,
)
from catalog.schema import CANONICAL_FIELDS

app = FastAPI(title="Folio Catalog API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request models

class SchemaIn(BaseModel):
    columns: List[str] = Field(default_factory=lambda: list(CANONICAL_FIELDS))
    customFields: Dict[str, List[str]] = Field(default_factory=dict)

    def to_schema(self) -> FieldSchema:
        try:
            return FieldSchema(columns=self.columns, custom_fields=self.customFields)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))


class ImportRequest(BaseModel):
    text: str
    schema_: SchemaIn = Field(default_factory=SchemaIn, alias="schema")
    maxRows: Optional[int] = Field(default=None, ge=0)


class ContextIn(BaseModel):
    collectionId: str
    userId: str
    userName: str = ""


class NormalizeRequest(BaseModel):
    store: Dict[str, Any]
    context: ContextIn


class MergeRequest(BaseModel):
    existing: Dict[str, Any]
    enriched: Dict[str, Any]


class FilterIn(BaseModel):
    search: str = ""
    tags: List[str] = Field(default_factory=list)
    onSale: bool = False
    priceRanges: List[str] = Field(default_factory=list)
    customFields: Dict[str, List[str]] = Field(default_factory=dict)


class FilterRequest(BaseModel):
    stores: List[Dict[str, Any]]
    filters: FilterIn = Field(default_factory=FilterIn)
    viewArchived: bool = False


class FacetsRequest(BaseModel):
    stores: List[Dict[str, Any]]
    viewArchived: bool = False


def _stores(data: List[Dict[str, Any]]) -> List[Store]:
    try:
        return [Store.from_dict(item) for item in data]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid store snapshot: {e}")


@app.get("/")
async def root():
    return {"message": "Folio Catalog API running"}


@app.post("/api/import")
async def import_csv(request: ImportRequest):
    """Parse CSV text into candidate store records with per-row errors."""
    result = parse_tabular(request.text, request.schema_.to_schema(), max_rows=request.maxRows)
    return result.to_dict()


@app.post("/api/stores/normalize")
async def normalize(request: NormalizeRequest):
    context = StoreContext(
        collection_id=request.context.collectionId,
        user_id=request.context.userId,
        user_name=request.context.userName,
    )
    try:
        store = StoreProcessor().transform(request.store, context)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return store.to_dict()


@app.get("/api/price/classify")
async def classify(raw: str = Query(default="")):
    bucket = classify_price(raw)
    return {"raw": raw, "bucket": bucket.value if bucket else None}


@app.post("/api/enrichment/merge")
async def merge(request: MergeRequest):
    existing = _stores([request.existing])[0]
    return merge_enrichment(existing, request.enriched).to_dict()


@app.post("/api/stores/filter")
async def filter_stores(request: FilterRequest):
    filters = FilterState.from_dict(request.filters.model_dump())
    stores = filter_and_sort(_stores(request.stores), filters, view_archived=request.viewArchived)
    return {
        "count": len(stores),
        "stores": [store.to_dict() for store in stores],
    }


@app.post("/api/stores/facets")
async def facets(request: FacetsRequest):
    return collect_facets(_stores(request.stores), view_archived=request.viewArchived).to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
