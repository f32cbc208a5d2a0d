"""Base model for pytriplog records.

Every record model inherits from :class:`TripLogBaseModel` which
provides:

* ``alias_generator=to_camel`` so the camelCase keys of persisted
  records and spreadsheet exports map to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and
  placeholder values (``""``, ``"--"``, NaN) so the field default is
  used instead.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings spreadsheets and older records use for "not set".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})


class TripLogBaseModel(BaseModel):
    """Base for immutable trip log records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_placeholders(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned
