"""Named endpoint handlers and the dispatch error they share."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

EndpointHandler = Callable[[dict[str, object]], dict[str, object]]


@dataclass(slots=True, frozen=True)
class EndpointDispatchError(Exception):
    """Endpoint failure carrying the envelope error code."""

    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class EndpointRegistry:
    """Endpoint names mapped to handlers, listed in registration order.

    A name can be bound once; stdio methods and HTTP routes both resolve
    through :meth:`dispatch`.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[str, EndpointHandler] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def register(self, name: str, handler: EndpointHandler) -> None:
        if name in self._handlers:
            raise ValueError(f"Endpoint already registered: {name}")
        self._handlers[name] = handler

    def names(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def dispatch(self, name: str, arguments: dict[str, object]) -> dict[str, object]:
        try:
            handler = self._handlers[name]
        except KeyError:
            raise EndpointDispatchError("UNKNOWN_ENDPOINT", f"Unknown endpoint: {name}") from None
        return handler(arguments)
