# stockledger/utils/tristate.py
#
# Optional fields on partial updates have three states: leave as-is,
# clear, or set to a value. A nullable primitive cannot tell the first
# two apart.

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")


@dataclass(frozen=True)
class Unset:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SetTo(Generic[T]):
    value: T


FieldPatch = Union[Unset, Clear, SetTo[T]]

UNSET = Unset()
CLEAR = Clear()


def patch_from_model(payload: BaseModel, field: str) -> FieldPatch[Any]:
    if field not in payload.model_fields_set:
        return UNSET
    value = getattr(payload, field)
    if value is None:
        return CLEAR
    return SetTo(value)
