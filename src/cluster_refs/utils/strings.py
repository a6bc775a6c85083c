from __future__ import annotations

import secrets
import string

_CHARSET = string.digits + string.ascii_lowercase

_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def ordinalize(n: int) -> str:
    """Return ``n`` with its English ordinal suffix, e.g. 43 -> "43rd", -109 -> "-109th"."""
    magnitude = abs(n)
    if 11 <= magnitude % 100 <= 13:
        return f"{n}th"
    return f"{n}{_SUFFIXES.get(magnitude % 10, 'th')}"


def random_string(n: int) -> str:
    """Return a random string of ``n`` lower-case alphanumerics, suitable for name suffixes."""
    return "".join(secrets.choice(_CHARSET) for _ in range(n))
