from __future__ import annotations

import re
from typing import Optional


_SHORTHAND_RE = re.compile(r"^([0-9]+(?:\.[0-9]+)?)([KMB]?)$")
_FACTORS = {"": 1, "K": 1_000, "M": 1_000_000, "B": 1_000_000_000}


def parse_count(value) -> Optional[int]:
    """Parse API counts such as '12000', 12000, '1.2K', '3M' or '500+' into an int.

    Returns None for unparsable inputs.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    s = str(value).strip().upper().replace(",", "")
    if not s:
        return None
    if s.endswith("+"):
        s = s[:-1]
    m = _SHORTHAND_RE.match(s)
    if m:
        return int(round(float(m.group(1)) * _FACTORS[m.group(2)]))
    digits = "".join(ch for ch in s if ch.isdigit())
    return int(digits) if digits else None


def format_count(count: Optional[int]) -> Optional[str]:
    """Human-readable subscriber count: 950 -> '950', 12000 -> '12K', 3400000 -> '3.4M'."""
    if count is None:
        return None
    if count >= 1_000_000:
        text = f"{count / 1_000_000:.1f}"
        suffix = "M"
    elif count >= 1_000:
        text = f"{count / 1_000:.1f}"
        suffix = "K"
    else:
        return str(count)
    if text.endswith(".0"):
        text = text[:-2]
    return text + suffix
