"""Product lookup: resolves scanned barcodes to catalogue data.

Adapters are chosen by name through ``PRODUCT_LOOKUP_ADAPTER`` and built at
most once per name, so data seeded into an adapter (the fake catalogue in
tests) survives between calls.
"""

from warehouse.config import product_lookup_adapter
from warehouse.lookup.port import ProductLookupPort


def _fake():
    from warehouse.lookup.fake_adapter import FakeProductLookup

    return FakeProductLookup()


ADAPTER_FACTORIES = {"fake": _fake}

_adapters: dict[str, ProductLookupPort] = {}


def get_product_lookup(name: str | None = None) -> ProductLookupPort:
    """Return the adapter registered under ``name``, or the configured one."""
    name = name or product_lookup_adapter()
    if name not in _adapters:
        try:
            factory = ADAPTER_FACTORIES[name]
        except KeyError:
            raise ValueError(f"Unknown product lookup adapter: {name}") from None
        _adapters[name] = factory()
    return _adapters[name]


def reset_product_lookup():
    """Drop every built adapter; the next lookup starts from an empty catalogue."""
    _adapters.clear()
