"""Endpoint registry and built-in handlers."""

from .handlers import parse_int_param, parse_query, register_builtin_endpoints
from .registry import EndpointDispatchError, EndpointHandler, EndpointRegistry

__all__ = [
    "EndpointDispatchError",
    "EndpointHandler",
    "EndpointRegistry",
    "parse_int_param",
    "parse_query",
    "register_builtin_endpoints",
]
