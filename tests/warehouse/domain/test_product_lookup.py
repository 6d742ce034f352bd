"""Tests for product lookup adapter selection."""

import pytest
from warehouse.lookup import get_product_lookup, reset_product_lookup
from warehouse.lookup.fake_adapter import FakeProductLookup


class TestAdapterSelection:
    def test_fake_is_the_default(self):
        assert isinstance(get_product_lookup(), FakeProductLookup)

    def test_adapter_is_built_once_per_name(self):
        lookup = get_product_lookup("fake")
        lookup.register("0009", name="gadget")
        assert get_product_lookup() is lookup
        assert get_product_lookup().lookup("0009")["name"] == "gadget"

    def test_reset_starts_an_empty_catalogue(self):
        get_product_lookup().register("0009", name="gadget")
        reset_product_lookup()
        assert get_product_lookup().lookup("0009") is None

    def test_unknown_adapter_from_environment(self, monkeypatch):
        monkeypatch.setenv("PRODUCT_LOOKUP_ADAPTER", "upcitemdb")
        with pytest.raises(ValueError):
            get_product_lookup()
