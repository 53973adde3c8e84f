from __future__ import annotations

from ..config import DecoderSpec
from .base import Decoder


class StaticMapDecoder(Decoder):
    """Translate enum-like values through a fixed mapping."""

    NAME = "static_map"

    def decode(self, value: str, spec: DecoderSpec) -> str:
        mapped = spec.static_map.get(value)
        if mapped is None:
            return f"unknown:{value}"
        return mapped
