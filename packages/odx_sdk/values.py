"""Value codecs for the backend's "false means no value" convention.

The backend writes a literal JSON ``false`` wherever a field has no value,
whatever the field's declared type. ``OptionalValue[T]`` is the single place
that convention is honoured on the way in: ``false`` becomes ``None`` and any
other node is validated as ``T``. Fields that are not ``OptionalValue`` keep
strict validation, so ``false`` there is a decode error rather than a silent
``0``, ``0.0`` or ``""``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator

T = TypeVar("T")

RELATION_EXPECTATION = "relation pair or false"


def decode_false_as_absent(value: object) -> object:
    """Return ``None`` for a JSON ``false`` node and ``value`` unchanged otherwise."""
    if value is False:
        return None
    return value


OptionalValue = Annotated[Optional[T], BeforeValidator(decode_false_as_absent)]
"""``T`` or absent (``None``); decodes backend ``false`` as absent."""


class OdxRecord(BaseModel):
    """Base class for typed backend records.

    Records validate strictly and ignore fields they do not declare, so a
    record type only has to name the projection it cares about.
    """

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")


class RelationReference(OdxRecord):
    """A many-to-one reference, sent by the backend as ``[id, label]``."""

    id: int
    label: OptionalValue[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, value: object) -> object:
        """Accept the backend's two-element array form.

        Keyword construction (``RelationReference(id=3)``) also arrives here as
        a mapping. Backend object nodes are rejected earlier, by the
        ``Relation`` and ``RelationPair`` field types.
        """
        if isinstance(value, (RelationReference, Mapping)):
            return value
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return {"id": value[0], "label": value[1]}
        raise ValueError(RELATION_EXPECTATION)

    def to_wire(self) -> list[object]:
        """Return the ``[id, label]`` pair form."""
        return [self.id, False if self.label is None else self.label]


def _relation_node(value: object) -> object:
    """Pass ``[id, label]`` pairs and references through; reject other shapes."""
    if isinstance(value, (RelationReference, list, tuple)):
        return value
    raise ValueError(RELATION_EXPECTATION)


def _relation_node_or_absent(value: object) -> object:
    if value is False or value is None:
        return None
    return _relation_node(value)


RelationPair = Annotated[RelationReference, BeforeValidator(_relation_node)]
"""A required many-to-one field; ``false`` or an object node is a decode error."""

Relation = Annotated[
    Optional[RelationReference], BeforeValidator(_relation_node_or_absent)
]
"""A many-to-one field: ``RelationReference`` or absent."""


class AbsentPolicy(str, Enum):
    """How absent (``None``) values are rendered in write/create payloads."""

    FALSE = "false"
    OMIT = "omit"


def encode_value(value: object) -> object:
    """Render one record value in the backend's wire form."""
    if isinstance(value, RelationReference):
        return value.id
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [encode_value(item) for item in value]
    return value


def encode_values(
    values: Mapping[str, Any], *, absent: AbsentPolicy = AbsentPolicy.FALSE
) -> dict[str, Any]:
    """Return a write/create value mapping with absent values rendered per policy.

    Relations are written by id. With ``AbsentPolicy.FALSE`` an absent value is
    sent as ``false`` (clearing the field); with ``AbsentPolicy.OMIT`` it is
    left out of the payload.
    """
    encoded: dict[str, Any] = {}
    for name, value in values.items():
        if value is None:
            if absent is AbsentPolicy.OMIT:
                continue
            encoded[name] = False
            continue
        encoded[name] = encode_value(value)
    return encoded


def false_if_blank(value: str | None) -> str | bool:
    """Return ``value`` unless it is empty or blank, in which case ``False``."""
    if value is None or value.strip() == "":
        return False
    return value
