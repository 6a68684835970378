"""Helper functions for delivering simulation outputs"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any

import numpy as np
from numpy.random._generator import Generator as NumpyGenerator

from hyperpool.math import FixedPoint


class ExtendedJSONEncoder(json.JSONEncoder):
    r"""Custom encoder for JSON string dumps"""
    # pylint: disable=too-many-return-statements

    def default(self, o):
        r"""Override default behavior"""
        if isinstance(o, set):
            return list(o)
        if isinstance(o, Enum):
            return o.name
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, FixedPoint):
            return str(o)
        if isinstance(o, NumpyGenerator):
            return "NumpyGenerator"
        try:
            return o.__dict__
        except AttributeError:
            pass
        # Let the base class default method raise the TypeError
        return json.JSONEncoder.default(self, o)


def to_json(data: Any, indent: int | None = 2) -> str:
    r"""Dump pool config, pool state or any nested dataclass to a JSON string

    Dict keys that aren't strings (such as checkpoint times) are cast to strings.
    """
    return json.dumps(_stringify_keys(data), sort_keys=True, indent=indent, cls=ExtendedJSONEncoder)


def _stringify_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {str(key): _stringify_keys(value) for key, value in data.items()}
    if hasattr(data, "__dict__") and not isinstance(data, (FixedPoint, NumpyGenerator, Enum, type)):
        return {str(key): _stringify_keys(value) for key, value in data.__dict__.items()}
    return data
