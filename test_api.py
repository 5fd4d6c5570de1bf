#!/usr/bin/env python3
"""
Tests for the catalog HTTP API.
"""

import unittest

from fastapi.testclient import TestClient

from api.main import app


def snapshot(store_id, name, **fields):
    data = {"id": store_id, "collectionId": "c-1", "store_name": name}
    data.update(fields)
    return data


class TestCatalogApi(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def test_root(self):
        self.assertEqual(self.client.get("/").status_code, 200)

    def test_import(self):
        response = self.client.post("/api/import", json={
            "text": "name,tags\nAcme,red,blue\n,orphan",
            "schema": {"columns": ["name", "tags"]},
        })
        data = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["records"][0]["tags"], ["red", "blue"])
        self.assertEqual(data["errors"], [{"row": 2, "reason": "Missing store name"}])
        self.assertIsNone(data["error"])

    def test_import_with_invalid_schema(self):
        response = self.client.post("/api/import", json={"text": "name\nA", "schema": {"columns": ["colour"]}})
        self.assertEqual(response.status_code, 422)

    def test_normalize(self):
        response = self.client.post("/api/stores/normalize", json={
            "store": {"store_name": "  Acme ", "price_range": "$$$", "tags": "Vegan, vegan"},
            "context": {"collectionId": "c-1", "userId": "u-1", "userName": "Ana"},
        })
        data = response.json()

        self.assertEqual(data["store_name"], "Acme")
        self.assertEqual(data["priceRange"], "high")
        self.assertEqual(data["tags"], ["vegan"])
        self.assertEqual(data["addedBy"], {"userId": "u-1", "userName": "Ana"})

    def test_normalize_requires_name(self):
        response = self.client.post("/api/stores/normalize", json={
            "store": {"store_name": ""},
            "context": {"collectionId": "c-1", "userId": "u-1"},
        })
        self.assertEqual(response.status_code, 422)

    def test_classify(self):
        self.assertEqual(self.client.get("/api/price/classify", params={"raw": "$$$"}).json()["bucket"], "high")
        self.assertIsNone(self.client.get("/api/price/classify", params={"raw": "free"}).json()["bucket"])

    def test_merge(self):
        response = self.client.post("/api/enrichment/merge", json={
            "existing": snapshot("s-1", "Acme", website="N/A", description="A lovely family shop."),
            "enriched": {"website": "http://x.com", "description": "new longer text"},
        })
        data = response.json()

        self.assertEqual(data["website"], "http://x.com")
        self.assertEqual(data["description"], "A lovely family shop.")

    def test_filter(self):
        stores = [
            snapshot("1", "Zed", tags=["vegan"]),
            snapshot("2", "acme", tags=["vegan", "sale"], priceRange="mid"),
            snapshot("3", "Acme", priceRange=""),
        ]
        response = self.client.post("/api/stores/filter", json={
            "stores": stores,
            "filters": {"search": "zed", "tags": ["vegan", "sale"]},
        })
        self.assertEqual(response.json()["count"], 0)

        response = self.client.post("/api/stores/filter", json={"stores": stores})
        self.assertEqual([s["store_name"] for s in response.json()["stores"]], ["Acme", "acme", "Zed"])

        response = self.client.post("/api/stores/filter", json={"stores": stores, "filters": {"priceRanges": ["mid"]}})
        self.assertEqual([s["id"] for s in response.json()["stores"]], ["2"])

    def test_filter_rejects_invalid_snapshot(self):
        response = self.client.post("/api/stores/filter", json={"stores": [{"store_name": "no id"}]})
        self.assertEqual(response.status_code, 422)

    def test_filter_rejects_malformed_custom_fields(self):
        response = self.client.post("/api/stores/filter", json={
            "stores": [snapshot("x", "A", customFields=["Vibe"])],
        })
        self.assertEqual(response.status_code, 422)

    def test_facets(self):
        stores = [
            snapshot("1", "A", tags=["vegan"], onSale=True, priceRange="low"),
            snapshot("2", "B", tags=["vegan"], isArchived=True),
        ]
        data = self.client.post("/api/stores/facets", json={"stores": stores}).json()

        self.assertEqual(data["total"], 1)
        self.assertEqual(data["tags"], {"vegan": 1})
        self.assertEqual(data["priceRanges"], {"low": 1})


if __name__ == '__main__':
    unittest.main()
