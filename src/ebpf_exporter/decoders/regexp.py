from __future__ import annotations

import functools
import re
from typing import Pattern

from ..config import DecoderSpec
from .base import Decoder, DecoderError, SkipLabelSet


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern[str]:
    # shared by all decoders and concurrent scrapes
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise DecoderError(f"invalid regexp {pattern!r}: {exc}") from exc


class RegexpDecoder(Decoder):
    """Keep values matching any of the configured patterns, skip the row otherwise."""

    NAME = "regexp"

    def decode(self, value: str, spec: DecoderSpec) -> str:
        for pattern in spec.regexps:
            if compile_pattern(pattern).search(value):
                return value
        raise SkipLabelSet(value)
