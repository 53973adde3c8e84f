from __future__ import annotations

from ..config import DecoderSpec
from ..parsing import parse_uint
from .base import Decoder, DecoderError


class UIntDecoder(Decoder):
    """Render an unsigned integer of any base as decimal."""

    NAME = "uint"

    def decode(self, value: str, spec: DecoderSpec) -> str:
        del spec
        try:
            return str(parse_uint(value))
        except ValueError as exc:
            raise DecoderError(str(exc)) from exc
