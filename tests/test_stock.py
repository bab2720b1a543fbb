"""Tests for the SKU diff detector."""

import json
import unittest

from restock_monitor.errors import MalformedPayloadError
from restock_monitor.models import SkuState
from restock_monitor.stock import build_event, diff_sizes, parse_product

from tests.fakes import product_doc, size


class TestDiffSizes(unittest.TestCase):
    """Verify restock detection and state replacement."""

    def test_becoming_available_is_a_restock(self):
        """12345 going from unavailable to available should be flagged."""
        previous = {"12345": SkuState(was_available=False, was_in_stock=False)}
        sizes, state, restocked = diff_sizes([size("12345", available=True)], previous)
        self.assertTrue(restocked)
        self.assertEqual(len(sizes), 1)
        self.assertTrue(sizes[0].restocked)
        self.assertEqual(state["12345"], SkuState(was_available=True, was_in_stock=False))

    def test_gaining_stock_is_a_restock(self):
        previous = {"1": SkuState(was_available=False, was_in_stock=False)}
        sizes, _, restocked = diff_sizes([size("1", in_stock=True)], previous)
        self.assertTrue(restocked)
        self.assertTrue(sizes[0].has_stock)
        self.assertFalse(sizes[0].is_available)

    def test_unchanged_is_not_a_restock(self):
        previous = {"1": SkuState(was_available=True, was_in_stock=True)}
        sizes, _, restocked = diff_sizes([size("1", available=True, in_stock=True)], previous)
        self.assertFalse(restocked)
        self.assertFalse(sizes[0].restocked)

    def test_sold_out_sizes_are_not_reported(self):
        sizes, state, restocked = diff_sizes([size("1"), size("2", available=True)], {})
        self.assertEqual([s.sku for s in sizes], ["2"])
        self.assertIn("1", state)
        self.assertTrue(restocked)

    def test_full_list_is_republished(self):
        """Already-available sizes ride along with the one that restocked."""
        previous = {
            "1": SkuState(was_available=True, was_in_stock=True),
            "2": SkuState(was_available=False, was_in_stock=False),
        }
        sizes, _, restocked = diff_sizes(
            [size("1", available=True, in_stock=True), size("2", available=True)], previous
        )
        self.assertTrue(restocked)
        self.assertEqual([(s.sku, s.restocked) for s in sizes], [("1", False), ("2", True)])

    def test_state_is_replaced_not_merged(self):
        """SKUs missing from the current document drop out of the state."""
        previous = {"gone": SkuState(was_available=True, was_in_stock=True)}
        _, state, _ = diff_sizes([size("1")], previous)
        self.assertEqual(set(state), {"1"})

    def test_string_flags(self):
        sizes, _, _ = diff_sizes([{"sku": "1", "isAvailable": "true", "hasStock": "false"}], {})
        self.assertTrue(sizes[0].is_available)
        self.assertFalse(sizes[0].has_stock)

    def test_non_object_entries_are_ignored(self):
        sizes, state, restocked = diff_sizes(["junk", None], {})
        self.assertEqual((sizes, state, restocked), ([], {}, False))


class TestParseProduct(unittest.TestCase):
    """Verify payload shape validation."""

    def test_returns_product(self):
        product = parse_product(json.loads(product_doc([size("1")])))
        self.assertEqual(product["name"], "Air Max 90")

    def test_missing_product_is_malformed(self):
        for payload in ({}, {"pageProps": {}}, [], "x", {"pageProps": {"product": []}}):
            with self.subTest(payload=payload):
                with self.assertRaises(MalformedPayloadError):
                    parse_product(payload)

    def test_sizes_must_be_a_list(self):
        with self.assertRaises(MalformedPayloadError):
            parse_product({"pageProps": {"product": {"sizes": {}}}})


class TestBuildEvent(unittest.TestCase):
    def test_fields(self):
        product = parse_product(json.loads(product_doc([size("1", available=True)])))
        sizes, _, _ = diff_sizes(product["sizes"], {})
        event = build_event("/p/am90.html", product, sizes)
        self.assertEqual(event.path, "/p/am90.html")
        self.assertEqual(event.nickname, "am90")
        self.assertEqual(event.code, "CN8490-002")
        self.assertEqual(event.price, "R$ 999,99")
        self.assertEqual(event.picture, "https://img.example/am90.png")
        self.assertEqual(len(event.sizes), 1)

    def test_missing_fields_are_empty(self):
        event = build_event("/p", {"sizes": []}, [])
        self.assertEqual((event.name, event.code, event.price, event.picture), ("", "", "", ""))


if __name__ == "__main__":
    unittest.main()
