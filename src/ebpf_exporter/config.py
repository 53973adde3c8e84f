"""
Program, metric and label definitions plus the YAML loader producing them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .exceptions import ConfigError


@dataclass(frozen=True)
class DecoderSpec:
    """One step of a label's decoder chain."""

    name: str
    static_map: Mapping[str, str] = field(default_factory=dict)
    regexps: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Label:
    """A positional field of a compound table key."""

    name: str
    size: int = 0
    decoders: Tuple[DecoderSpec, ...] = ()


@dataclass(frozen=True)
class Counter:
    name: str
    help: str
    table: str
    labels: Tuple[Label, ...] = ()


@dataclass(frozen=True)
class Histogram:
    """
    Histogram backed by a table whose last key field is the bucket boundary.

    ``group_labels`` are exported as metric labels, ``bucket_label`` only
    selects the bucket a row belongs to.
    """

    name: str
    help: str
    table: str
    group_labels: Tuple[Label, ...]
    bucket_label: Label
    bucket_type: str = "fixed"
    bucket_multiplier: float = 1.0

    @property
    def labels(self) -> Tuple[Label, ...]:
        """Full key layout, bucket field included."""
        return self.group_labels + (self.bucket_label,)


@dataclass(frozen=True)
class Program:
    name: str
    code: str = ""
    cflags: Tuple[str, ...] = ()
    kprobes: Mapping[str, str] = field(default_factory=dict)
    kretprobes: Mapping[str, str] = field(default_factory=dict)
    counters: Tuple[Counter, ...] = ()
    histograms: Tuple[Histogram, ...] = ()


@dataclass(frozen=True)
class Config:
    programs: Tuple[Program, ...] = ()


def load_config(path: Union[str, Path]) -> Config:
    """Read a YAML config file and build the program definitions from it."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config {path}: {exc}") from exc
    return parse_config(raw or {})


def parse_config(raw: Mapping[str, Any]) -> Config:
    if not isinstance(raw, Mapping):
        raise ConfigError("config root must be a mapping")
    programs = raw.get("programs") or []
    if not isinstance(programs, list):
        raise ConfigError("'programs' must be a list")
    return Config(programs=tuple(_parse_program(item) for item in programs))


def _parse_program(raw: Any) -> Program:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"program definition must be a mapping, got {raw!r}")
    name = _require(raw, "name", "program")
    metrics = raw.get("metrics") or {}
    if not isinstance(metrics, Mapping):
        raise ConfigError(f"'metrics' of program {name!r} must be a mapping")
    cflags = raw.get("cflags") or []
    if not isinstance(cflags, list):
        raise ConfigError(f"'cflags' of program {name!r} must be a list")
    return Program(
        name=name,
        code=raw.get("code") or "",
        cflags=tuple(str(flag) for flag in cflags),
        kprobes=_probe_map(raw.get("kprobes"), "kprobes", name),
        kretprobes=_probe_map(raw.get("kretprobes"), "kretprobes", name),
        counters=tuple(_parse_counter(item, name) for item in metrics.get("counters") or ()),
        histograms=tuple(_parse_histogram(item, name) for item in metrics.get("histograms") or ()),
    )


def _probe_map(raw: Optional[Any], section: str, program: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{section!r} of program {program!r} must be a mapping")
    # YAML mappings keep document order, which is the attach order.
    return {str(symbol): str(function) for symbol, function in raw.items()}


def _parse_counter(raw: Any, program: str) -> Counter:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"counter definition in program {program!r} must be a mapping")
    name = _require(raw, "name", f"counter of program {program!r}")
    return Counter(
        name=name,
        help=str(raw.get("help") or ""),
        table=str(raw.get("table") or ""),
        labels=_parse_labels(raw.get("labels"), name),
    )


def _parse_histogram(raw: Any, program: str) -> Histogram:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"histogram definition in program {program!r} must be a mapping")
    name = _require(raw, "name", f"histogram of program {program!r}")
    labels = _parse_labels(raw.get("labels"), name)
    if not labels:
        raise ConfigError(f"histogram {name!r} of program {program!r} needs a bucket label")
    try:
        multiplier = float(raw.get("bucket_multiplier", 1.0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"bucket_multiplier of histogram {name!r} must be a number") from exc
    return Histogram(
        name=name,
        help=str(raw.get("help") or ""),
        table=str(raw.get("table") or ""),
        group_labels=labels[:-1],
        bucket_label=labels[-1],
        bucket_type=str(raw.get("bucket_type") or "fixed"),
        bucket_multiplier=multiplier,
    )


def _parse_labels(raw: Optional[Any], metric: str) -> Tuple[Label, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError(f"labels of metric {metric!r} must be a list")
    labels = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise ConfigError(f"label of metric {metric!r} must be a mapping, got {item!r}")
        label_name = _require(item, "name", f"label of metric {metric!r}")
        try:
            size = int(item.get("size") or 0)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"size of label {label_name!r} of metric {metric!r} must be an integer") from exc
        labels.append(
            Label(
                name=label_name,
                size=size,
                decoders=tuple(_parse_decoder(d, label_name) for d in item.get("decoders") or ()),
            )
        )
    return tuple(labels)


def _parse_decoder(raw: Any, label: str) -> DecoderSpec:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"decoder of label {label!r} must be a mapping, got {raw!r}")
    static_map = raw.get("static_map") or {}
    if not isinstance(static_map, Mapping):
        raise ConfigError(f"static_map of label {label!r} must be a mapping")
    return DecoderSpec(
        name=_require(raw, "name", f"decoder of label {label!r}"),
        static_map={str(key): str(value) for key, value in static_map.items()},
        regexps=tuple(str(pattern) for pattern in raw.get("regexps") or ()),
    )


def _require(raw: Mapping[str, Any], key: str, what: str) -> str:
    value = raw.get(key)
    if not value:
        raise ConfigError(f"{what} is missing required field {key!r}")
    return str(value)
