from typing import Optional

def parse_price(raw) -> Optional[float]:
    """Flexible quote parser — handles numbers, dicts, lists, or objects.

    Candle-shaped payloads resolve to their close; returns None when no price is found.
    """
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, dict):
        for key in ("price", "quote", "close", "value"):
            if raw.get(key) is not None:
                return _to_float(raw[key])
        return None
    if isinstance(raw, (list, tuple)):
        # [time, price] ticks or [time, open, high, low, close, ...] candles
        if len(raw) >= 5:
            return _to_float(raw[4])
        if len(raw) >= 2:
            return _to_float(raw[1])
        return None
    for attr in ("price", "quote", "close"):
        value = getattr(raw, attr, None)
        if value is not None:
            return _to_float(value)
    return None


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
