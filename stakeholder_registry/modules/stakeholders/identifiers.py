"""Stakeholder identifier classification.

Callers address a stakeholder either by its sequential ``id`` or by its
``stakeholder_uuid``. Every raw value is classified exactly once into a
``NumericId`` or an ``OpaqueId``; queries then match on a single column.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, false

from stakeholder_registry.core.errors import AmbiguousIdentifierError
from stakeholder_registry.models.stakeholder import Stakeholder

_INTEGER_RE = re.compile(r"^[+-]?\d+$")

# Range of the INTEGER ``stakeholder.id`` column (PostgreSQL int4)
ID_MIN = -(2**31)
ID_MAX = 2**31 - 1


@dataclass(frozen=True)
class NumericId:
    value: int

    @property
    def in_range(self) -> bool:
        return ID_MIN <= self.value <= ID_MAX

    def clause(self) -> ColumnElement[bool]:
        # No row can hold an id outside the column range, so match nothing
        # rather than sending a value the driver cannot bind.
        if not self.in_range:
            return false()
        return Stakeholder.id == self.value


@dataclass(frozen=True)
class OpaqueId:
    value: str

    def clause(self) -> ColumnElement[bool]:
        return Stakeholder.stakeholder_uuid == self.value


Identifier = NumericId | OpaqueId


def classify_identifier(raw: Any) -> Identifier:
    """Classify ``raw`` as a numeric id or an opaque uuid string.

    Integers and integer-looking strings ("2", " 2 ") are numeric; any other
    non-blank string or ``uuid.UUID`` is opaque. Anything else raises
    ``AmbiguousIdentifierError``. Numeric ids beyond the ``id`` column range
    still classify as numeric and simply match no row.
    """
    if isinstance(raw, (NumericId, OpaqueId)):
        return raw
    # bool is an int subclass but never a stakeholder id
    if isinstance(raw, bool):
        raise AmbiguousIdentifierError(f"Cannot use boolean {raw!r} as a stakeholder identifier")
    if isinstance(raw, int):
        return NumericId(raw)
    if isinstance(raw, uuid.UUID):
        return OpaqueId(str(raw))
    if isinstance(raw, str):
        value = raw.strip()
        if not value:
            raise AmbiguousIdentifierError("Stakeholder identifier is blank")
        if _INTEGER_RE.match(value):
            return NumericId(int(value))
        return OpaqueId(value)
    raise AmbiguousIdentifierError(
        f"Cannot classify {type(raw).__name__} value {raw!r} as a stakeholder identifier",
        detail={"type": type(raw).__name__},
    )
