"""Pydantic models for plugin parameter metadata.

A ParameterDescriptor is produced fresh by every successful extraction and is
never mutated in place; value changes produce a new instance.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class ParameterKind(str, Enum):
    """Parameter type discriminator (serialized lowercase)."""

    FLOAT = "float"
    BOOL = "bool"
    ENUM = "enum"


class ParameterDescriptor(BaseModel):
    """One exported control of a compiled plugin."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, description="Stable identity, unique within a build")
    name: str = Field(description="Human-readable display name")
    kind: ParameterKind = Field(alias="type", description="float, bool or enum")
    value: float = Field(description="Current value in the declared range")
    default: float = Field(description="Default value in the declared range")
    min: float = Field(0.0, description="Lower bound of the range")
    max: float = Field(1.0, description="Upper bound of the range")
    unit: Optional[str] = Field(None, description="Display unit, e.g. dB, Hz, %")
    group: Optional[str] = Field(None, description="UI grouping, e.g. Input, Output")
    variants: Optional[List[str]] = Field(None, description="Labels for enum parameters")

    def with_value(self, value: float) -> "ParameterDescriptor":
        return self.model_copy(update={"value": float(value)})

    def accepts(self, value: float) -> bool:
        """Check whether value lies in this parameter's domain."""
        if self.kind is ParameterKind.BOOL:
            return value in (0.0, 1.0)
        if self.kind is ParameterKind.ENUM:
            if not float(value).is_integer():
                return False
            if self.variants:
                return 0 <= int(value) < len(self.variants)
        return self.min <= value <= self.max

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_DESCRIPTOR_LIST = TypeAdapter(List[ParameterDescriptor])


def parse_descriptor_list(raw: str | bytes) -> list[ParameterDescriptor]:
    """Parse a JSON array of descriptors.

    Raises ValueError on malformed JSON, schema mismatch, or duplicate ids.
    """
    try:
        params = _DESCRIPTOR_LIST.validate_json(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid parameter payload: {e}") from e

    seen: set[str] = set()
    for param in params:
        if param.id in seen:
            raise ValueError(f"Duplicate parameter id in payload: {param.id}")
        seen.add(param.id)
    return params


def dump_descriptor_list(params: Iterable[ParameterDescriptor], pretty: bool = False) -> str:
    """Serialize descriptors to JSON (single line unless pretty)."""
    data = [p.to_wire() for p in params]
    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data, separators=(",", ":"))
