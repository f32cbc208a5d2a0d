"""Driver roster lookup.

This is a convenience gate, not a security boundary: names match
case-insensitively and PINs by plain equality.
"""

from __future__ import annotations

from pytriplog.config import TripLogConfig


def canonical_driver(config: TripLogConfig, username: str) -> str | None:
    """Return the configured spelling of *username*, if it is a known driver."""
    wanted = username.strip().casefold()
    for name in config.drivers:
        if name.casefold() == wanted:
            return name
    return None


def authenticate(config: TripLogConfig, username: str, pin: str) -> str | None:
    """Return the canonical driver name when the PIN matches, else ``None``."""
    name = canonical_driver(config, username)
    if name is None or config.drivers[name] != pin:
        return None
    return name
