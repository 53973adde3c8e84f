from __future__ import annotations

from ..config import DecoderSpec
from .base import Decoder


class StringDecoder(Decoder):
    """bcc prints char arrays as quoted strings; drop the quotes."""

    NAME = "string"

    def decode(self, value: str, spec: DecoderSpec) -> str:
        del spec
        if len(value) >= 2 and value[0] == value[-1] == '"':
            return value[1:-1]
        return value
