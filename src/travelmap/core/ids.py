"""ID generation contracts.

Records get opaque string ids from an injected `IdProvider`:
- `new_id()` (default): random UUID4 hex, 32 chars.
- `sequential_ids(prefix)`: deterministic `prefix-0001`, `prefix-0002`, ... for tests.

INVARIANT: ids are permanent. Once a city or stamp carries an id, mutators never change it.
"""

from __future__ import annotations

import itertools
import uuid
from typing import Callable

IdProvider = Callable[[], str]


def new_id() -> str:
    return uuid.uuid4().hex


def sequential_ids(prefix: str = "id", start: int = 1) -> IdProvider:
    """Return a provider yielding `{prefix}-{n:04d}` starting at `start`."""
    counter = itertools.count(start)
    return lambda: f"{prefix}-{next(counter):04d}"
