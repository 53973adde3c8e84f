"""
`ebpf-exporter` command line interface serving kernel table metrics.
"""

from __future__ import annotations

import argparse
import logging
import socketserver
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Sequence, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from ..attach import AttachmentManager, BCCAttachCapability
from ..config import load_config
from ..debug import TABLES_PATH, tables_app
from ..exceptions import ExporterError
from ..exporter import Exporter

LOG = logging.getLogger("ebpf_exporter")

DEFAULT_LISTEN_ADDRESS = ":9435"
METRICS_PATH = "/metrics"


class ThreadingWSGIServer(socketserver.ThreadingMixIn, WSGIServer):
    """Serve each scrape in its own thread."""

    daemon_threads = True


class QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: object) -> None:
        LOG.debug("%s - %s", self.address_string(), format % args)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ebpf-exporter",
        description="Export kernel eBPF table contents as Prometheus metrics.",
    )
    parser.add_argument("--config", type=Path, required=True, help="YAML file with programs to attach.")
    parser.add_argument(
        "--listen-address",
        type=str,
        default=DEFAULT_LISTEN_ADDRESS,
        help="host:port to serve /metrics and /tables on.",
    )
    parser.add_argument(
        "--log",
        type=str,
        default="INFO",
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--bcc-path",
        type=Path,
        action="append",
        default=[],
        help="Extra directory to search for the bcc python module (repeatable).",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_listen_address(raw: str) -> Tuple[str, int]:
    host, sep, port = raw.rpartition(":")
    if not sep:
        host, port = "", raw
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ValueError(f"invalid listen address {raw!r}") from None


def build_app(exporter: Exporter, registry: CollectorRegistry) -> Callable[[Dict, Callable], Iterable[bytes]]:
    metrics = make_wsgi_app(registry)
    tables = tables_app(exporter)

    def app(environ: Dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "")
        if path == TABLES_PATH:
            return tables(environ, start_response)
        if path == METRICS_PATH:
            return metrics(environ, start_response)
        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [f"not found, try {METRICS_PATH} or {TABLES_PATH}\n".encode("utf-8")]

    return app


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log)

    try:
        host, port = parse_listen_address(args.listen_address)
    except ValueError as exc:
        LOG.error("%s", exc)
        return 1

    try:
        config = load_config(args.config)
        attachments = AttachmentManager(BCCAttachCapability(args.bcc_path))
        attachments.attach_all(config.programs)
    except ExporterError as exc:
        LOG.error("Error attaching exporter: %s", exc)
        return 1

    LOG.info("Started with %d programs found in the config", len(config.programs))

    exporter = Exporter(config, attachments)
    registry = CollectorRegistry()
    registry.register(exporter)

    server = make_server(
        host,
        port,
        build_app(exporter, registry),
        server_class=ThreadingWSGIServer,
        handler_class=QuietHandler,
    )
    LOG.info("Listening on %s", args.listen_address)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOG.info("Shutting down...")
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
