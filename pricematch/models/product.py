# pricematch/models/product.py

"""Query and raw candidate data models."""

import re
from dataclasses import dataclass

# GTIN-8 through GTIN-14
BARCODE_MIN_DIGITS = 8
BARCODE_MAX_DIGITS = 14


@dataclass(frozen=True)
class ProductQuery:
    """What the user asked for, created once per comparison request."""

    description: str
    expected_name: str | None = None
    category_hint: str | None = None
    barcode: str | None = None

    @property
    def search_text(self) -> str:
        """The text matching and query relaxation start from."""
        if self.expected_name and self.expected_name.strip():
            return self.expected_name.strip()
        return self.description.strip()

    @property
    def barcode_digits(self) -> str | None:
        """The barcode reduced to digits, or None when it is not a GTIN."""
        if not self.barcode:
            return None
        digits = re.sub(r"\D", "", self.barcode)
        if not BARCODE_MIN_DIGITS <= len(digits) <= BARCODE_MAX_DIGITS:
            return None
        return digits


@dataclass(frozen=True)
class RawCandidate:
    """A single unverified offer as returned by a source provider."""

    title: str
    price: float
    source_label: str
    url: str = ""
    currency: str = "USD"
    image_url: str = ""
    in_stock: bool | None = None
    provider_id: str = ""
