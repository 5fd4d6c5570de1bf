#!/usr/bin/env python3
"""
Tests for external enrichment: runner, retry, HTTP clients and images.
"""

import base64
import threading
import unittest
from unittest import mock

import requests

from catalog.collection import delete_stores
from catalog.config import EnrichmentConfig, RetryConfig
from catalog.schema import Collection, CollectionTemplate, Store
from services.enrichment import (
    EnrichmentError,
    EnrichmentRunner,
    HttpEnrichmentSource,
    HttpImageGenerator,
    RetryExhausted,
    RetryHandler,
    StaticEnrichmentSource,
    StaticImageGenerator,
    WebsiteMetadataSource,
    apply_generated_image,
    to_data_url,
)
from services.enrichment.retry import calculate_backoff


def make_collection() -> Collection:
    stores = [
        Store(id="a", collection_id="c-1", store_name="Acme", website="N/A"),
        Store(id="b", collection_id="c-1", store_name="Beta", website="beta.example", description="ok"),
        Store(id="c", collection_id="c-1", store_name="Gamma"),
    ]
    return Collection(id="c-1", owner_id="u-1", name="Picks", template=CollectionTemplate("Default"), stores=stores)


def http_config(**kwargs) -> EnrichmentConfig:
    defaults = dict(
        endpoint="https://enrich.example/api",
        image_endpoint="https://images.example/api",
        retry=RetryConfig(max_attempts=1),
    )
    defaults.update(kwargs)
    return EnrichmentConfig(**defaults)


class TestEnrichmentRunner(unittest.TestCase):

    def test_results_are_merged_fill_only(self):
        source = StaticEnrichmentSource({
            "a": {"website": "acme.com"},
            "b": {"website": "other.example", "description": "bakery and cafe since 1990"},
        })
        collection = EnrichmentRunner(source, max_workers=2).enrich_collection(make_collection())

        self.assertEqual(collection.get_store("a").website, "acme.com")
        self.assertEqual(collection.get_store("b").website, "beta.example")
        self.assertEqual(collection.get_store("b").description, "Bakery and cafe since 1990")
        self.assertEqual(collection.get_store("c"), make_collection().get_store("c"))

    def test_failure_does_not_affect_other_stores(self):
        source = StaticEnrichmentSource({"a": {"website": "acme.com"}, "b": {"description": "x" * 20}}, failing=["b"])
        runner = EnrichmentRunner(source)
        report = runner.run(make_collection().stores)

        self.assertIn("b", report.failures)
        self.assertEqual(report.results, {"a": {"website": "acme.com"}})
        self.assertEqual(report.summary(), {"enriched": 1, "failed": 1, "cancelled": 0})

        collection = runner.apply(make_collection(), report)
        self.assertEqual(collection.get_store("b").description, "ok")

    def test_cancelled_run_applies_nothing(self):
        source = StaticEnrichmentSource({"a": {"website": "acme.com"}})
        cancel = threading.Event()
        cancel.set()

        report = EnrichmentRunner(source).run(make_collection().stores, cancel_event=cancel)

        self.assertEqual(report.results, {})
        self.assertEqual(sorted(report.cancelled), ["a", "b", "c"])
        self.assertEqual(source.calls, [])

    def test_deleted_store_is_skipped_on_apply(self):
        source = StaticEnrichmentSource({"a": {"website": "acme.com"}})
        runner = EnrichmentRunner(source)
        collection = make_collection()
        report = runner.run(collection.stores)

        current = delete_stores(collection, ["a"])
        self.assertEqual([s.id for s in runner.apply(current, report).stores], ["b", "c"])

    def test_selected_stores_only(self):
        source = StaticEnrichmentSource({"a": {"website": "acme.com"}})
        EnrichmentRunner(source).enrich_collection(make_collection(), store_ids=["c"])
        self.assertEqual(source.calls, ["c"])


class TestRetryHandler(unittest.TestCase):

    def setUp(self):
        self.sleep = mock.Mock()
        self.handler = RetryHandler(RetryConfig(max_attempts=3, jitter="none"), sleep=self.sleep)

    def test_retries_transient_errors(self):
        func = mock.Mock(side_effect=[requests.ConnectionError("down"), requests.Timeout("slow"), "ok"])

        self.assertEqual(self.handler.execute(func), "ok")
        self.assertEqual(func.call_count, 3)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [1.0, 2.0])

    def test_exhausted(self):
        func = mock.Mock(side_effect=requests.ConnectionError("down"))
        with self.assertRaises(RetryExhausted) as ctx:
            self.handler.execute(func)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(self.sleep.call_count, 2)

    def test_non_retryable_propagates(self):
        func = mock.Mock(side_effect=ValueError("bad payload"))
        with self.assertRaises(ValueError):
            self.handler.execute(func)
        self.assertEqual(func.call_count, 1)

    def test_http_status_codes(self):
        response = requests.Response()
        response.status_code = 503
        self.assertTrue(self.handler.is_retryable(requests.HTTPError(response=response)))
        response.status_code = 404
        self.assertFalse(self.handler.is_retryable(requests.HTTPError(response=response)))

    def test_backoff_is_capped(self):
        self.assertEqual(calculate_backoff(10, base_delay=1.0, max_delay=20.0, jitter="none"), 20.0)
        self.assertLessEqual(calculate_backoff(3, jitter="full"), 8.0)


class TestHttpEnrichmentSource(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.store = make_collection().get_store("a")

    def test_keeps_non_blank_known_fields(self):
        self.session.post.return_value.json.return_value = {
            "website": "acme.com",
            "description": "  ",
            "tags": ["spam"],
        }
        source = HttpEnrichmentSource(http_config(), session=self.session)

        self.assertEqual(source.enrich(self.store), {"website": "acme.com"})
        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs["json"]["store_name"], "Acme")
        self.assertNotIn("private_notes", kwargs["json"])
        self.assertEqual(source.stats["enriched"], 1)

    def test_network_failure_raises_enrichment_error(self):
        self.session.post.side_effect = requests.ConnectionError("down")
        source = HttpEnrichmentSource(http_config(), session=self.session)

        with self.assertRaises(EnrichmentError) as ctx:
            source.enrich(self.store)
        self.assertEqual(ctx.exception.store_id, "a")
        self.assertEqual(source.stats["errors"], 1)

    def test_requires_endpoint(self):
        with self.assertRaises(ValueError):
            HttpEnrichmentSource(http_config(endpoint=""), session=self.session)


class TestWebsiteMetadataSource(unittest.TestCase):

    HTML = """
    <html><head>
      <meta property="og:description" content="Open graph text">
      <meta name="description" content="  Small batch roasters in Lisbon. ">
    </head><body></body></html>
    """

    def test_extract_description_prefers_meta_description(self):
        self.assertEqual(WebsiteMetadataSource.extract_description(self.HTML), "Small batch roasters in Lisbon.")
        self.assertEqual(
            WebsiteMetadataSource.extract_description('<meta property="og:description" content="OG only">'),
            "OG only",
        )
        self.assertIsNone(WebsiteMetadataSource.extract_description("<p>nothing</p>"))

    def test_fetches_store_website(self):
        session = mock.Mock()
        session.get.return_value.text = self.HTML
        source = WebsiteMetadataSource(http_config(), session=session)
        store = Store(id="b", collection_id="c-1", store_name="Beta", website="beta.example")

        self.assertEqual(source.enrich(store), {"description": "Small batch roasters in Lisbon."})
        self.assertEqual(session.get.call_args.args[0], "https://beta.example")

    def test_sentinel_website_is_not_fetched(self):
        session = mock.Mock()
        source = WebsiteMetadataSource(http_config(), session=session)

        self.assertEqual(source.enrich(make_collection().get_store("a")), {})
        session.get.assert_not_called()


class TestImageSideChannel(unittest.TestCase):

    def test_generated_image_becomes_data_url(self):
        collection = apply_generated_image(make_collection(), "a", StaticImageGenerator(image=b"png"))
        self.assertEqual(collection.get_store("a").image_url, to_data_url(b"png"))
        self.assertTrue(collection.get_store("a").image_url.startswith("data:image/png;base64,"))

    def test_failure_leaves_collection_unchanged(self):
        collection = make_collection()
        self.assertIs(apply_generated_image(collection, "a", StaticImageGenerator(failing=["a"])), collection)
        self.assertIs(apply_generated_image(collection, "missing", StaticImageGenerator()), collection)

    def test_http_image_generator(self):
        session = mock.Mock()
        session.post.return_value.json.return_value = {"image": base64.b64encode(b"\x89PNG").decode("ascii")}
        generator = HttpImageGenerator(http_config(), session=session)

        self.assertEqual(generator.generate(make_collection().get_store("a")), b"\x89PNG")
        self.assertIn("Acme", session.post.call_args.kwargs["json"]["prompt"])

    def test_http_image_generator_rejects_bad_payload(self):
        session = mock.Mock()
        session.post.return_value.json.return_value = {"image": "not base64!"}
        generator = HttpImageGenerator(http_config(), session=session)

        with self.assertRaises(EnrichmentError):
            generator.generate(make_collection().get_store("a"))


if __name__ == '__main__':
    unittest.main()
