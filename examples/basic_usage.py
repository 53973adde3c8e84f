"""Print the metrics of the bio example once, without starting an HTTP server."""

from pathlib import Path

from prometheus_client import CollectorRegistry, generate_latest

from ebpf_exporter import AttachmentManager, BCCAttachCapability, Exporter, load_config
from ebpf_exporter.debug import format_tables

config = load_config(Path(__file__).with_name("bio.yaml"))

# Compile the programs and attach their kprobes (needs root and bcc)
attachments = AttachmentManager(BCCAttachCapability())
attachments.attach_all(config.programs)

exporter = Exporter(config, attachments)
registry = CollectorRegistry()
registry.register(exporter)

# Raw table contents, as served on /tables
print(format_tables(exporter.export_tables()))

# Prometheus exposition, as served on /metrics
print(generate_latest(registry).decode("utf-8"))
