"""
Metric data model for the stats buffer.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from dataclasses import dataclass, field

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError


Number = Union[int, float]
Tags = Mapping[str, str]


class MetricKind(str, Enum):
    """Metric kinds."""
    GAUGE = "gauge"
    COUNTER = "counter"


# "increment" is the counter kind's name on the StatsD side
_KIND_ALIASES = {
    "increment": MetricKind.COUNTER,
}


def coerce_kind(value: Union[MetricKind, str]) -> MetricKind:
    """Map a kind or one of its aliases to a MetricKind; unknown kinds raise ValueError."""
    if isinstance(value, MetricKind):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        return _KIND_ALIASES.get(lowered) or MetricKind(lowered)
    return MetricKind(value)


def canonical_tags(tags: Optional[Mapping[str, Any]]) -> Tuple[Tuple[str, str], ...]:
    """Sorted (key, value) pairs; mapping order never affects the result."""
    if not tags:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in tags.items()))


@dataclass(frozen=True)
class MetricIdentity:
    """Name plus canonical tag set; two updates share an entry iff identities are equal."""
    name: str
    tags: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, name: str, tags: Optional[Mapping[str, Any]] = None) -> "MetricIdentity":
        return cls(name=name, tags=canonical_tags(tags))

    @property
    def key(self) -> str:
        """Render the identity as ``name|k1=v1,k2=v2``."""
        label_str = ",".join(f"{k}={v}" for k, v in self.tags)
        return f"{self.name}|{label_str}"

    def __str__(self) -> str:
        return self.key


@dataclass
class MetricEntry:
    """Accumulated state for one metric identity."""
    name: str
    kind: MetricKind
    value: Number
    tags: Dict[str, str] = field(default_factory=dict)

    def snapshot(self) -> "MetricEntry":
        return MetricEntry(
            name=self.name,
            kind=self.kind,
            value=self.value,
            tags=dict(self.tags)
        )


class MetricUpdate(BaseModel):
    """A single producer update.

    Accepts both ``{name, kind, value, tags}`` and the StatsD-client style
    ``{metricName, type, value, tags}`` field names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "metricName", "metric_name"))
    kind: MetricKind = Field(validation_alias=AliasChoices("kind", "type"))
    value: Number
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value):
        if isinstance(value, str):
            return coerce_kind(value)
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _stringify_tags(cls, value):
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @classmethod
    def parse(cls, raw: Union["MetricUpdate", Mapping[str, Any]]) -> "MetricUpdate":
        """Coerce a mapping into an update, raising ``ValidationError`` on bad input."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid metric update",
                {"errors": e.errors(include_url=False, include_context=False)}
            ) from e

    @property
    def identity(self) -> MetricIdentity:
        return MetricIdentity.of(self.name, self.tags)
