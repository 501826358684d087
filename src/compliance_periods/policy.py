from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Policy:
    # Malformed identifiers degrade to the fallback range instead of raising.
    strict: bool = False
    # Weekly identifiers render as YYYY-W09 rather than YYYY-W9.
    pad_week_numbers: bool = True
