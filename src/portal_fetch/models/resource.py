"""Request descriptors and the observable state of a resource binding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")

Method = Literal["GET", "POST", "PUT", "DELETE"]


class RequestDescriptor(BaseModel):
    """An immutable description of one HTTP request.

    Two descriptors with equal fields are the same request, whatever their identity.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    method: Method = "GET"
    body: str | bytes | dict[str, Any] | list[Any] | None = None
    headers: dict[str, str] | None = None

    @property
    def is_json_body(self) -> bool:
        """Whether the body is sent with a JSON Content-Type."""
        return self.body is not None and not isinstance(self.body, bytes)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded(Generic[T]):
    response: T


@dataclass(frozen=True)
class Failed:
    error: Exception


ResourceState = Union[Idle, Loading, Loaded[T], Failed]
