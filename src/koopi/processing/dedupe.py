from typing import Dict, Iterable, List, Tuple

from ..models import Offer


def dedupe_offers(offers: Iterable[Offer]) -> List[Offer]:
    """Collapse identical offers; the last one seen for a key wins.

    Notes that differ only in case, diacritics or punctuation count as equal.
    """
    unique: Dict[Tuple[str, ...], Offer] = {}
    for offer in offers:
        unique[offer.dedupe_key()] = offer
    return list(unique.values())
