from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import numpy


def _json_default(o: Any):
    # embeddings commonly arrive as numpy arrays or numpy scalars
    if isinstance(o, numpy.ndarray):
        return o.tolist()
    if isinstance(o, numpy.generic):
        return o.item()
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    if isinstance(o, datetime | date):
        return o.isoformat()
    if isinstance(o, Decimal):
        return str(o)
    return str(o)
