"""Utilities for serialising calculation responses."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Tuple

from flask import jsonify

ResponseTuple = Tuple[Any, int]


def build_calculation_response(
    result: Mapping[str, Any], metadata: Mapping[str, Any]
) -> ResponseTuple:
    """Return a Flask JSON response pairing ``result`` with the rule metadata."""

    return jsonify({"result": dict(result), "meta": dict(metadata)}), 200
