from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import InventoryError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a store operation: either a value or the error that stopped it."""

    value: Optional[T] = None
    error: Optional[InventoryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: InventoryError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
