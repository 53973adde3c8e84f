"""
Decoder contract and the registry applying a label's decoder chain.
"""

from __future__ import annotations

import abc
from typing import Dict, Mapping, Optional

from ..config import DecoderSpec, Label


class SkipLabelSet(Exception):
    """Raised by a decoder to drop the whole row the field belongs to."""


class DecoderError(Exception):
    """Raised when a field cannot be decoded."""


class Decoder(abc.ABC):
    """Contract for a single decoding step."""

    NAME: str = ""

    @abc.abstractmethod
    def decode(self, value: str, spec: DecoderSpec) -> str:
        """Return the decoded value, or raise SkipLabelSet / DecoderError."""


class DecoderSet:
    """Applies label decoder chains using a name -> decoder registry."""

    def __init__(self, decoders: Optional[Mapping[str, Decoder]] = None) -> None:
        if decoders is None:
            decoders = default_decoders()
        self._decoders: Dict[str, Decoder] = dict(decoders)

    def register(self, decoder: Decoder) -> None:
        self._decoders[decoder.NAME] = decoder

    def decode(self, value: str, label: Label) -> str:
        """
        Run ``value`` through every decoder of ``label`` in order.

        A label without decoders keeps the raw field as-is.
        """
        result = value
        for spec in label.decoders:
            decoder = self._decoders.get(spec.name)
            if decoder is None:
                raise DecoderError(f"unknown decoder {spec.name!r}")
            result = decoder.decode(result, spec)
        return result


def default_decoders() -> Dict[str, Decoder]:
    from .ksym import KsymDecoder
    from .regexp import RegexpDecoder
    from .static_map import StaticMapDecoder
    from .string import StringDecoder
    from .uint import UIntDecoder

    decoders = (KsymDecoder(), RegexpDecoder(), StaticMapDecoder(), StringDecoder(), UIntDecoder())
    return {decoder.NAME: decoder for decoder in decoders}
