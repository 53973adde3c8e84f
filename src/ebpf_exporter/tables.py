"""
Reading kernel tables and decoding their rows into labeled metric values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Protocol, Sequence, Tuple

from .config import Label
from .decoders import DecoderSet, SkipLabelSet
from .exceptions import KeyArityError, LabelDecodeError, ValueParseError
from .parsing import parse_uint

LOG = logging.getLogger(__name__)

KEY_DELIMITERS = "{ }"


@dataclass(frozen=True)
class MetricValue:
    """A decoded row of a kernel table."""

    # raw key as printed by the kernel, kept for debugging
    raw: str
    labels: Tuple[str, ...]
    value: float


class TableCapability(Protocol):
    def iterate(self, module: Any, table_name: str) -> Iterable[Tuple[str, str]]:
        """Yield ``(raw_key, raw_value)`` text pairs reflecting current kernel state."""


class BCCTableCapability:
    """Reads tables of ``bcc.BPF`` modules using bcc's own key/leaf printers."""

    def iterate(self, module: Any, table_name: str) -> Iterator[Tuple[str, str]]:
        table = module[table_name]
        for key, leaf in table.items():
            yield _text(table.key_sprintf(key)), _text(table.leaf_sprintf(leaf))


def _text(raw: Any) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", "replace")
    return str(raw)


def split_key(raw_key: str) -> List[str]:
    """
    Split a compound key such as ``{ 0x8 "sda" }`` into its fields.

    >>> split_key('{ sda read }')
    ['sda', 'read']
    """
    return raw_key.strip(KEY_DELIMITERS).split()


class TableReader:
    """Turns the rows of one table into ``MetricValue`` objects."""

    def __init__(self, capability: TableCapability, decoders: DecoderSet) -> None:
        self.capability = capability
        self.decoders = decoders

    def table_values(self, module: Any, table_name: str, labels: Sequence[Label]) -> List[MetricValue]:
        """
        Read and decode every row of ``table_name``.

        Rows a decoder asks to skip are left out. A key with the wrong number of
        fields, a failing decoder or an unparsable value aborts the whole read.
        """
        values: List[MetricValue] = []
        for raw_key, raw_value in self.capability.iterate(module, table_name):
            decoded = self._decode_key(raw_key, labels)
            if decoded is None:
                continue

            try:
                value = parse_uint(raw_value)
            except ValueError as exc:
                raise ValueParseError(
                    f"value {raw_value!r} for key {list(decoded)} cannot be parsed as uint64: {exc}"
                ) from exc

            values.append(MetricValue(raw=raw_key, labels=decoded, value=float(value)))
        LOG.debug("Decoded %d rows from table %s", len(values), table_name)
        return values

    def _decode_key(self, raw_key: str, labels: Sequence[Label]) -> Tuple[str, ...] | None:
        fields = split_key(raw_key)
        if len(fields) != len(labels):
            raise KeyArityError(
                f"key {raw_key!r} has {len(fields)} elements, but we expect {len(labels)}"
            )

        decoded = []
        for field_value, label in zip(fields, labels):
            try:
                decoded.append(self.decoders.decode(field_value, label))
            except SkipLabelSet:
                return None
            except Exception as exc:
                raise LabelDecodeError(
                    f"error decoding {field_value!r} for label {label.name!r}: {exc}"
                ) from exc
        return tuple(decoded)
