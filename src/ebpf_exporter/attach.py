"""
Loading programs into the kernel and attaching their kprobes and kretprobes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Protocol

from .bcc_runtime import BCCRuntime
from .config import Program
from .exceptions import (
    DuplicateProgramError,
    ModuleLoadError,
    ProbeAttachError,
    ProbeLoadError,
    ProgramNotAttachedError,
)

LOG = logging.getLogger(__name__)


class AttachCapability(Protocol):
    def load_module(self, program: Program) -> Any:
        """Compile and load the program code, returning a module handle."""

    def load_function(self, module: Any, fn_name: str) -> Any:
        """Load a probe function of ``module``."""

    def attach_entry(self, module: Any, symbol: str, fn_name: str) -> None:
        """Attach ``fn_name`` as a kprobe on kernel ``symbol``."""

    def attach_return(self, module: Any, symbol: str, fn_name: str) -> None:
        """Attach ``fn_name`` as a kretprobe on kernel ``symbol``."""


class BCCAttachCapability:
    """Attach capability backed by ``bcc.BPF``."""

    def __init__(self, bcc_paths: Iterable[Path] = (), runtime: BCCRuntime | None = None) -> None:
        self.runtime = runtime or BCCRuntime(bcc_paths)

    def load_module(self, program: Program) -> Any:
        return self.runtime.compile(program)

    def load_function(self, module: Any, fn_name: str) -> Any:
        return module.load_func(fn_name, self.runtime.kprobe_type)

    def attach_entry(self, module: Any, symbol: str, fn_name: str) -> None:
        module.attach_kprobe(event=symbol, fn_name=fn_name)

    def attach_return(self, module: Any, symbol: str, fn_name: str) -> None:
        module.attach_kretprobe(event=symbol, fn_name=fn_name)


class AttachmentManager:
    """
    Owns the module handle of every attached program.

    Attachment is not transactional: when a program fails, the ones attached
    before it stay attached. Callers treat any error as fatal.
    """

    def __init__(self, capability: AttachCapability) -> None:
        self.capability = capability
        self._modules: Dict[str, Any] = {}

    def attach_all(self, programs: Iterable[Program]) -> None:
        for program in programs:
            self.attach(program)

    def attach(self, program: Program) -> None:
        if program.name in self._modules:
            raise DuplicateProgramError(f"multiple programs with name {program.name!r}")

        try:
            module = self.capability.load_module(program)
        except Exception as exc:
            raise ModuleLoadError(f"error compiling module for program {program.name!r}: {exc}") from exc
        if module is None:
            raise ModuleLoadError(f"error compiling module for program {program.name!r}")

        for symbol, fn_name in program.kprobes.items():
            self._attach_probe(program, module, "kprobe", symbol, fn_name)
        for symbol, fn_name in program.kretprobes.items():
            self._attach_probe(program, module, "kretprobe", symbol, fn_name)

        self._modules[program.name] = module
        LOG.info(
            "Program %s attached (%d kprobes, %d kretprobes)",
            program.name,
            len(program.kprobes),
            len(program.kretprobes),
        )

    def _attach_probe(self, program: Program, module: Any, kind: str, symbol: str, fn_name: str) -> None:
        try:
            self.capability.load_function(module, fn_name)
        except Exception as exc:
            raise ProbeLoadError(
                f"failed to load {kind} function {fn_name!r} for {symbol!r} in program {program.name!r}: {exc}"
            ) from exc

        attach = self.capability.attach_entry if kind == "kprobe" else self.capability.attach_return
        try:
            attach(module, symbol, fn_name)
        except Exception as exc:
            raise ProbeAttachError(
                f"failed to attach {kind} {fn_name!r} to {symbol!r} in program {program.name!r}: {exc}"
            ) from exc
        LOG.debug("Attached %s %s -> %s in program %s", kind, fn_name, symbol, program.name)

    def module(self, name: str) -> Any:
        try:
            return self._modules[name]
        except KeyError:
            raise ProgramNotAttachedError(f"module for program {name!r} is not attached") from None

    def __contains__(self, name: object) -> bool:
        return name in self._modules
