"""
Event records for tracking forecast occurrences.
"""

from __future__ import annotations

from typing import Any, NamedTuple

import numpy as np


class Event(NamedTuple):
    """
    Time-stamped record of something that happened to a property.

    Attributes:
        t: Month of the event (np.datetime64[M])
        property_id: Property the event belongs to
        kind: Event type ('purchase', 'growth', 'sale', 'offset_open', 'offset_close')
        message: Human-readable description
        meta: Optional amounts and other details
    """

    t: np.datetime64
    property_id: str
    kind: str
    message: str
    meta: dict[str, Any] | None = None
