from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Tuple

from .processing.normalize import normalize_key


@dataclass
class Offer:
    """One discount row of a product group on a kupi.cz search page."""

    category: str = ""
    query: str = ""
    name: str = ""
    price: str = ""
    price_per_unit: str = ""
    discount: str = ""
    note: str = ""
    club: str = ""
    volume: str = ""
    market: str = ""
    validity: str = ""
    url: str = ""
    image_url: str = ""
    subcat: str = ""

    def dedupe_key(self) -> Tuple[str, ...]:
        return (
            self.name,
            self.price,
            self.price_per_unit,
            normalize_key(self.note),
            self.club,
            self.volume,
            self.market,
            self.validity,
        )

    def product_key(self) -> Tuple[str, str, str, str]:
        """Generic product group: same goods regardless of market or price."""
        return (self.name, self.volume, self.category, self.subcat)

    def as_tuple(self) -> Tuple[str, ...]:
        return astuple(self)
