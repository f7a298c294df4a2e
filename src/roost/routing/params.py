"""Typed path variables.

A route segment ``{name:type}`` names one of the converters below. The
router uses ``pattern`` to decide whether a segment matches; the
dispatcher uses ``convert`` to turn the captured text into the value
passed to the handler.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Converter:
    pattern: str
    convert: Callable[[str], Any]


CONVERTERS: dict[str, Converter] = {
    "str": Converter(r"[^/]+", str),
    "int": Converter(r"\d+", int),
    "float": Converter(r"\d+(?:\.\d+)?", float),
    # Only valid as the last segment; swallows the rest of the path.
    "path": Converter(r".+", str),
}


def convert_param(value: str, param_type: str) -> str | int | float:
    """Convert one captured variable.

    ``KeyError`` for an unknown *param_type*, ``ValueError`` when the
    text does not convert.
    """
    return CONVERTERS[param_type].convert(value)


def convert_params(raw: dict[str, str], types: dict[str, str]) -> dict[str, Any]:
    """Convert every captured variable, keeping capture order.

    Variables missing from *types* stay strings.
    """
    return {name: convert_param(value, types.get(name, "str")) for name, value in raw.items()}
