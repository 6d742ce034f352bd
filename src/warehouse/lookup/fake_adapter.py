"""Fake product lookup: deterministic in-memory catalogue for tests and development."""

from warehouse.lookup.port import ProductLookupPort


class FakeProductLookup(ProductLookupPort):
    """Catalogue backed by a dict; unknown barcodes resolve to None."""

    def __init__(self):
        self._products: dict[str, dict] = {}
        self.should_succeed = True

    def register(self, barcode: str, name: str, unit: str | None = None, asin: str | None = None):
        """Seed the fake catalogue."""
        self._products[barcode] = {"name": name, "unit": unit, "asin": asin}

    def configure(self, should_succeed: bool = True):
        self.should_succeed = should_succeed

    def lookup(self, barcode: str) -> dict | None:
        if not self.should_succeed:
            return None
        product = self._products.get(barcode)
        return dict(product) if product else None
