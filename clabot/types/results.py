"""Explicit lookup results for resources whose absence is expected."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    what: str


Lookup = Union[Found[T], NotFound]
