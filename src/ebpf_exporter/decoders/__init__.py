"""Label decoders turning raw table key fields into label values."""

from .base import Decoder, DecoderError, DecoderSet, SkipLabelSet
from .ksym import KsymDecoder
from .regexp import RegexpDecoder
from .static_map import StaticMapDecoder
from .string import StringDecoder
from .uint import UIntDecoder

__all__ = [
    "Decoder",
    "DecoderError",
    "DecoderSet",
    "KsymDecoder",
    "RegexpDecoder",
    "SkipLabelSet",
    "StaticMapDecoder",
    "StringDecoder",
    "UIntDecoder",
]
