"""Shared behaviour for encapsulated domain entities."""

from __future__ import annotations

from dataclasses import fields
from typing import Any

from hsse_audit.utils import time_utils


class DomainEntity:
    """Mixin for frozen dataclass entities.

    Entities are declared ``frozen=True`` so that plain attribute assignment
    fails. Methods validate their preconditions first and then call
    ``_apply`` once, which writes every change together and stamps
    ``modified_at``.
    """

    def _apply(self, _touch: bool = True, **changes: Any) -> None:
        # _touch=False is for identity bookkeeping (ids, stored version).
        names = {f.name for f in fields(self)}  # type: ignore[arg-type]
        unknown = set(changes) - names
        if unknown:
            raise AttributeError(f"{type(self).__name__} has no field(s) {sorted(unknown)}")
        for name, value in changes.items():
            object.__setattr__(self, name, value)
        if _touch:
            object.__setattr__(self, "modified_at", time_utils.utc_now())
