"""
ebpf_exporter: Prometheus metrics from kernel eBPF tables.

Programs are compiled and attached to kprobes/kretprobes with bcc; the tables
they fill are decoded into labeled counters and histograms on every scrape.
"""

from ebpf_exporter.attach import AttachmentManager, BCCAttachCapability
from ebpf_exporter.config import Config, Counter, DecoderSpec, Histogram, Label, Program, load_config
from ebpf_exporter.decoders import DecoderSet, SkipLabelSet
from ebpf_exporter.exporter import Descriptor, DescriptorCache, Exporter
from ebpf_exporter.tables import MetricValue, TableReader

__version__ = "0.1.0"

__all__ = [
    "AttachmentManager",
    "BCCAttachCapability",
    "Config",
    "Counter",
    "DecoderSet",
    "DecoderSpec",
    "Descriptor",
    "DescriptorCache",
    "Exporter",
    "Histogram",
    "Label",
    "MetricValue",
    "Program",
    "SkipLabelSet",
    "TableReader",
    "load_config",
    "__version__",
]
