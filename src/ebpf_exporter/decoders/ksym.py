from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from ..config import DecoderSpec
from ..parsing import parse_uint
from .base import Decoder, DecoderError

LOG = logging.getLogger(__name__)

KALLSYMS_PATH = Path("/proc/kallsyms")


class KsymDecoder(Decoder):
    """
    Resolve kernel addresses to symbol names.

    The symbol table is read from ``/proc/kallsyms`` on first use and kept for
    the process lifetime; addresses are matched exactly, as probes record the
    instruction pointer of the function entry.
    """

    NAME = "ksym"

    def __init__(self, path: Union[str, Path] = KALLSYMS_PATH) -> None:
        self._path = Path(path)
        self._symbols: Optional[Dict[int, str]] = None
        self._lock = threading.Lock()

    def _load(self) -> Dict[int, str]:
        with self._lock:
            if self._symbols is not None:
                return self._symbols
            symbols: Dict[int, str] = {}
            try:
                with self._path.open("r", encoding="utf-8", errors="replace") as handle:
                    for line in handle:
                        parts = line.split()
                        if len(parts) < 3:
                            continue
                        try:
                            address = int(parts[0], 16)
                        except ValueError:
                            continue
                        symbols.setdefault(address, parts[2])
            except OSError as exc:
                raise DecoderError(f"cannot read {self._path}: {exc}") from exc
            LOG.debug("Loaded %d kernel symbols from %s", len(symbols), self._path)
            self._symbols = symbols
            return symbols

    def decode(self, value: str, spec: DecoderSpec) -> str:
        del spec
        try:
            address = parse_uint(value)
        except ValueError as exc:
            raise DecoderError(str(exc)) from exc
        name = self._load().get(address)
        if name is None:
            return f"unknown_addr:{address:#x}"
        return name
