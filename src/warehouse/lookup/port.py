"""Product lookup port: abstract interface for barcode catalogue services.

Ledger code programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod


class ProductLookupPort(ABC):
    """Abstract interface for barcode lookup adapters."""

    @abstractmethod
    def lookup(self, barcode: str) -> dict | None:
        """Resolve a barcode to catalogue data.

        Returns:
            dict with keys name, unit and asin, or None when the barcode is unknown
        """
        ...
