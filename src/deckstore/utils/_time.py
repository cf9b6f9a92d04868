"""Clock helpers."""

from typing import TYPE_CHECKING

import pendulum

if TYPE_CHECKING:
    from pendulum import DateTime


def utc_now() -> "DateTime":  # noqa: UP037
    """Return the current time as a timezone-aware UTC datetime."""
    return pendulum.now("UTC")
