"""Service-layer helpers for the NaijaTax backend."""

from .request_parser import parse_json_object
from .response_builder import build_calculation_response

__all__ = [
    "build_calculation_response",
    "parse_json_object",
]
