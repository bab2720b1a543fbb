from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .errors import MalformedPayloadError
from .models import RestockEvent, SizeInfo, SkuState


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return False


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _dig(data: Any, *keys: Any) -> Any:
    for key in keys:
        if isinstance(key, int):
            if not isinstance(data, list) or len(data) <= key:
                return None
            data = data[key]
        else:
            if not isinstance(data, dict):
                return None
            data = data.get(key)
    return data


def parse_product(payload: Any) -> Dict[str, Any]:
    """Return ``pageProps.product`` from a decoded product document."""
    product = _dig(payload, "pageProps", "product")
    if not isinstance(product, dict):
        raise MalformedPayloadError("pageProps.product missing or not an object")
    sizes = product.get("sizes", [])
    if not isinstance(sizes, list):
        raise MalformedPayloadError("product.sizes is not a list")
    return product


def diff_sizes(
    raw_sizes: Sequence[Any],
    previous: Mapping[str, SkuState],
) -> Tuple[List[SizeInfo], Dict[str, SkuState], bool]:
    """Compare the current sizes against the previous per-SKU state.

    Returns the sizes that are available or in stock (each flagged
    ``restocked`` on an off->on transition of either flag), the new state
    snapshot, and whether anything restocked."""
    sizes: List[SizeInfo] = []
    state: Dict[str, SkuState] = {}
    had_restock = False

    for raw in raw_sizes:
        if not isinstance(raw, dict):
            continue
        sku = _as_str(raw.get("sku"))
        is_available = _as_bool(raw.get("isAvailable"))
        has_stock = _as_bool(raw.get("hasStock"))
        before = previous.get(sku, SkuState(was_available=False, was_in_stock=False))

        restocked = (is_available and not before.was_available) or (has_stock and not before.was_in_stock)
        had_restock = had_restock or restocked

        if is_available or has_stock:
            sizes.append(
                SizeInfo(
                    description=_as_str(raw.get("description")),
                    sku=sku,
                    ean=_as_str(raw.get("ean")),
                    has_stock=has_stock,
                    is_available=is_available,
                    restocked=restocked,
                )
            )
        state[sku] = SkuState(was_available=is_available, was_in_stock=has_stock)

    return sizes, state, had_restock


def build_event(path: str, product: Mapping[str, Any], sizes: Sequence[SizeInfo]) -> RestockEvent:
    return RestockEvent(
        path=path,
        name=_as_str(product.get("name")),
        nickname=_as_str(product.get("nickname")),
        code=_as_str(_dig(product, "colorInfo", "styleCode")),
        price=_as_str(_dig(product, "priceInfos", "priceFormatted")),
        picture=_as_str(_dig(product, "images", 0, "url")),
        sizes=tuple(sizes),
    )
