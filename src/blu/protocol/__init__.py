"""Request/response messaging over notifying characteristics."""

from .correlator import DEFAULT_REQUEST_TIMEOUT, RequestCorrelator
from .request import Request
from .response import CompoundResponse, Response, is_compound
from .threads import ResponseThreadManager

__all__ = [
    "DEFAULT_REQUEST_TIMEOUT",
    "CompoundResponse",
    "Request",
    "RequestCorrelator",
    "Response",
    "ResponseThreadManager",
    "is_compound",
]
