"""Either values returned by gateway operations instead of raising."""

from abc import ABC, abstractmethod
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class Either(Generic[E, T], ABC):

    @abstractmethod
    def is_right(self) -> bool:
        ...

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> "Either[E, U]":
        ...

    @abstractmethod
    def bind(self, f: Callable[[T], "Either[E, U]"]) -> "Either[E, U]":
        ...

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        ...

    @abstractmethod
    def get_error(self) -> E:
        ...


class Right(Either[E, T]):
    __slots__ = ("value",)

    def __init__(self, value: T):
        self.value = value

    def is_right(self) -> bool:
        return True

    def map(self, f):
        return Right(f(self.value))

    def bind(self, f):
        return f(self.value)

    def get_or_else(self, default):
        return self.value

    def get_error(self):
        raise ValueError("Right has no error")

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self.value == other.value

    def __repr__(self) -> str:
        return f"Right({self.value!r})"


class Left(Either[E, T]):
    __slots__ = ("error",)

    def __init__(self, error: E):
        self.error = error

    def is_right(self) -> bool:
        return False

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def get_error(self):
        return self.error

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self.error == other.error

    def __repr__(self) -> str:
        return f"Left({self.error!r})"
