"""
Locating the bcc Python bindings and compiling programs with them.

bcc is installed by the distribution (``python3-bpfcc``), not from the package
index, so its bindings often live outside the interpreter's own search path.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional

from .config import Program
from .exceptions import BPFUnavailableError

LOG = logging.getLogger(__name__)

DISTRO_BCC_PATHS = (
    Path("/usr/share/bcc/python"),
    Path("/usr/lib/python3/dist-packages"),
    Path("/usr/lib/python3/site-packages"),
)


def existing_paths(paths: Iterable[Path]) -> List[str]:
    """Resolved directories among ``paths``, first occurrence wins."""
    found: List[str] = []
    for path in paths:
        path = Path(path)
        if not path.is_dir():
            continue
        resolved = str(path.resolve())
        if resolved not in found:
            found.append(resolved)
    return found


def extend_search_path(user_paths: Iterable[Path] = ()) -> None:
    """
    Make bcc importable.

    Directories given by the user take precedence over everything already on
    ``sys.path``; distro locations are only consulted as a last resort so they
    cannot shadow packages of the running environment.
    """
    for path in reversed(existing_paths(user_paths)):
        if path in sys.path:
            sys.path.remove(path)
        sys.path.insert(0, path)
    for path in existing_paths(DISTRO_BCC_PATHS):
        if path not in sys.path:
            sys.path.append(path)


def import_bpf_class(user_paths: Iterable[Path] = ()) -> Any:
    extend_search_path(user_paths)
    try:
        from bcc import BPF  # type: ignore[import-untyped]
    except ImportError as exc:
        raise BPFUnavailableError(
            "Unable to import bcc.BPF. Install bcc (e.g., `sudo apt-get install bpfcc-tools "
            "python3-bpfcc`) or point --bcc-path at its python bindings."
        ) from exc
    return BPF


class BCCRuntime:
    """The ``bcc.BPF`` class, imported the first time a program is compiled."""

    def __init__(self, user_paths: Iterable[Path] = ()) -> None:
        self.user_paths = tuple(Path(path) for path in user_paths)
        self._bpf_class: Optional[Any] = None

    @property
    def bpf_class(self) -> Any:
        if self._bpf_class is None:
            self._bpf_class = import_bpf_class(self.user_paths)
        return self._bpf_class

    @property
    def kprobe_type(self) -> Any:
        return self.bpf_class.KPROBE

    def compile(self, program: Program) -> Any:
        LOG.debug("Compiling program %s with cflags %s", program.name, list(program.cflags))
        return self.bpf_class(text=program.code, cflags=list(program.cflags))
