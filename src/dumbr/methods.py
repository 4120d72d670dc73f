"""
HTTP methods a route entry may respond to.
"""

from enum import Enum


class HttpMethod(str, Enum):
    """Methods that can be bound to a response template.

    ``UNSUPPORTED`` is what every unrecognized method string parses to, so
    callers always get a member back and decide themselves what to do with
    entries that cannot be served.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    UNSUPPORTED = "UNSUPPORTED"

    @classmethod
    def parse(cls, value: str) -> "HttpMethod":
        """Case-insensitive lookup; unknown or empty strings give UNSUPPORTED."""
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return cls.UNSUPPORTED

    @property
    def is_supported(self) -> bool:
        return self is not HttpMethod.UNSUPPORTED

    @classmethod
    def supported(cls) -> tuple:
        """All members that can actually be registered, in declaration order."""
        return tuple(m for m in cls if m.is_supported)
