from __future__ import annotations

from typing import Iterable, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config.rules import FORBIDDEN_GOODS
from ..config.settings import KOOPI_HOME_URL, KOOPI_IMAGE_URL
from ..models import Offer
from .normalize import (
    absolutize,
    derive_subcategory,
    is_forbidden,
    normalize_decimal,
    normalize_discount,
    normalize_note,
    normalize_volume,
    sanitize_string,
)

GROUP_SELECTOR = "div.group_discounts"
INACTIVE_CLASS = "notactive"
NAME_SELECTOR = "div.product_name h2 a"
IMAGE_SELECTOR = "div.product_image a img"
ROW_SELECTOR = ".discount_row"

PRICE_SELECTOR = ".discount_price_value"
PRICE_PER_UNIT_SELECTOR = ".price_per_unit"
DISCOUNT_SELECTOR = ".discount_percentage"
VOLUME_SELECTOR = ".discount_amount"
NOTE_SELECTOR = ".discount_note"
CLUB_SELECTOR = ".discounts_club"
VALIDITY_SELECTOR = ".discounts_validity"
MARKET_SELECTOR = ".discounts_shop_name a span"


def parse_document(content: Union[bytes, str]) -> BeautifulSoup:
    return BeautifulSoup(content, "lxml")


def _text(node: Tag, selector: str) -> str:
    # all matches concatenated, like jQuery's .text()
    return "".join(el.get_text() for el in node.select(selector))


def _attr(node: Tag, selector: str, attr: str) -> str:
    el = node.select_one(selector)
    if el is None:
        return ""
    value = el.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    return value or ""


def _parse_row(row: Tag, base: Offer) -> Offer:
    note = normalize_note(_text(row, NOTE_SELECTOR))
    return Offer(
        category=base.category,
        query=base.query,
        name=base.name,
        url=base.url,
        image_url=base.image_url,
        price=normalize_decimal(_text(row, PRICE_SELECTOR)),
        price_per_unit=normalize_decimal(_text(row, PRICE_PER_UNIT_SELECTOR)),
        discount=normalize_discount(_text(row, DISCOUNT_SELECTOR)),
        volume=normalize_volume(_text(row, VOLUME_SELECTOR)),
        note=note,
        club=sanitize_string(_text(row, CLUB_SELECTOR)),
        validity=sanitize_string(_text(row, VALIDITY_SELECTOR)),
        market=sanitize_string(_text(row, MARKET_SELECTOR)),
        subcat=derive_subcategory(note),
    )


def extract_offers(
    document: BeautifulSoup,
    category: str,
    query: str,
    forbidden: Optional[Iterable[str]] = None,
) -> List[Offer]:
    """Turn a search result page into offers, one per discount row.

    Inactive groups and groups whose product name hits the denylist are
    skipped as a whole. Offers without a product name are dropped.
    """
    forbidden = FORBIDDEN_GOODS if forbidden is None else list(forbidden)
    offers: List[Offer] = []

    for group in document.select(GROUP_SELECTOR):
        if INACTIVE_CLASS in (group.get("class") or []):
            continue

        name = sanitize_string(_text(group, NAME_SELECTOR))
        if not name or is_forbidden(name, forbidden):
            continue

        base = Offer(
            category=category,
            query=query,
            name=name,
            url=absolutize(_attr(group, NAME_SELECTOR, "href"), KOOPI_HOME_URL),
            image_url=absolutize(_attr(group, IMAGE_SELECTOR, "data-src"), KOOPI_IMAGE_URL),
        )
        for row in group.select(ROW_SELECTOR):
            offers.append(_parse_row(row, base))

    return offers
