from __future__ import annotations

import hashlib
import json
import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..config.rules import (
    CSV_COLUMNS,
    IMAGE_DEFAULT_NAME,
    IMAGE_EXPORT_EXT,
    IMAGE_EXPORT_SUFFIXES,
    IMAGE_HOST_PREFIX,
    IMAGE_PLACEHOLDER_MARK,
    IMAGE_PLACEHOLDER_URL,
    IMAGE_THUMBS_PREFIX,
)
from ..config.settings import KOOPI_HOME_URL
from ..errors import OutputWriteError
from ..models import Offer
from ..processing.collate import czech_sort_key, sorted_czech
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OutputStats:
    markets: List[str] = field(default_factory=list)
    market_counts: Dict[str, int] = field(default_factory=dict)
    volumes: List[str] = field(default_factory=list)

    def market_summary(self) -> str:
        return ", ".join(f"{m} ({self.market_counts[m]})" for m in self.markets)


def _strip_prefix(value: str, prefix: str) -> str:
    return value[len(prefix):] if value.startswith(prefix) else value


def identity_hash(offer: Offer) -> str:
    """Stable id of the generic product (same across markets and prices)."""
    raw = offer.name + offer.volume + offer.category + offer.subcat
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def offer_counts(offers: Iterable[Offer]) -> Counter:
    return Counter(offer.product_key() for offer in offers)


def collect_stats(offers: Iterable[Offer]) -> OutputStats:
    market_counts: Counter = Counter()
    volumes = set()
    for offer in offers:
        if offer.market:
            market_counts[offer.market] += 1
        if offer.volume:
            volumes.add(offer.volume)
    markets = sorted_czech(market_counts)
    return OutputStats(
        markets=markets,
        market_counts={m: market_counts[m] for m in markets},
        volumes=sorted_czech(volumes),
    )


def _offer_sort_key(offer: Offer) -> Tuple:
    return (czech_sort_key(offer.name), offer.as_tuple())


def sort_offers(offers: Iterable[Offer]) -> List[Offer]:
    """Czech alphabetical order by product name, remaining fields break ties."""
    return sorted(offers, key=_offer_sort_key)


def csv_url(url: str) -> str:
    return _strip_prefix(url, KOOPI_HOME_URL)


def csv_image(url: str) -> str:
    url = _strip_prefix(url, IMAGE_THUMBS_PREFIX)
    url = _strip_prefix(url, IMAGE_PLACEHOLDER_URL)
    return _strip_prefix(url, IMAGE_HOST_PREFIX)


def json_image(url: str) -> str:
    """'https://img.kupi.cz/kupi/thumbs/ab/cd.jpg' -> 'ab/cd.webp'."""
    for suffix in IMAGE_EXPORT_SUFFIXES:
        if url.endswith(suffix):
            url = url[: -len(suffix)] + IMAGE_EXPORT_EXT
            break
    url = _strip_prefix(url, IMAGE_THUMBS_PREFIX)
    url = _strip_prefix(url, IMAGE_PLACEHOLDER_URL)
    if not url or IMAGE_PLACEHOLDER_MARK in url:
        return IMAGE_DEFAULT_NAME
    return url


def to_csv_frame(offers: Sequence[Offer]) -> pd.DataFrame:
    rows = [
        {
            "Name": o.name,
            "Price": o.price,
            "PricePerUnit": o.price_per_unit,
            "Discount": o.discount,
            "Category": o.category,
            "SubCat": o.subcat,
            "Note": o.note,
            "Club": o.club,
            "Volume": o.volume,
            "Market": o.market,
            "Validity": o.validity,
            "Url": csv_url(o.url),
            "ImageUrl": csv_image(o.image_url),
            "Query": o.query,
        }
        for o in offers
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS, dtype=str)


def to_feed_items(offers: Sequence[Offer]) -> List[Dict[str, object]]:
    counts = offer_counts(offers)
    return [
        {
            "id": identity_hash(o),
            "cat": o.category,
            "subcat": o.subcat,
            "query": o.query,
            "name": o.name,
            "price": o.price.replace(",", ".", 1),
            "priceperunit": o.price_per_unit,
            "discount": o.discount,
            "note": o.note,
            "club": o.club,
            "volume": o.volume,
            "market": o.market,
            "validity": o.validity,
            "url": _strip_prefix(o.url, KOOPI_HOME_URL),
            "image": json_image(o.image_url),
            "offer_count": counts[o.product_key()],
        }
        for o in offers
    ]


def _replace_into(path: Path, write) -> None:
    path = Path(path)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        if path.parent != Path(""):
            path.parent.mkdir(parents=True, exist_ok=True)
        write(tmp)
        os.replace(tmp, path)
    except (OSError, ValueError, TypeError) as exc:
        raise OutputWriteError(f"{path}: error writing: {exc}") from exc
    finally:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            pass


def write_csv(offers: Sequence[Offer], path: Path) -> int:
    df = to_csv_frame(offers)
    _replace_into(
        path,
        lambda tmp: df.to_csv(tmp, sep=";", index=False, encoding="utf-8", lineterminator="\n"),
    )
    logger.info("[OK] wrote: %s (rows=%d)", path, len(df))
    return len(df)


def write_json(
    offers: Sequence[Offer],
    markets: Sequence[str],
    path: Path,
    created: Optional[datetime] = None,
) -> int:
    created = created or datetime.now().astimezone()
    goods = to_feed_items(offers)
    payload = {
        "created": created.isoformat(timespec="seconds"),
        "count": len(goods),
        "goods": goods,
        "markets": list(markets),
    }

    def _dump(tmp: Path) -> None:
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.write("\n")

    _replace_into(path, _dump)
    logger.info("[OK] wrote: %s (goods=%d)", path, len(goods))
    return len(goods)
