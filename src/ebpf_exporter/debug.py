"""
Debug view of the raw and decoded contents of kernel tables.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping

from .exceptions import TableDumpError
from .exporter import Exporter
from .tables import MetricValue

LOG = logging.getLogger(__name__)

TABLES_PATH = "/tables"


def format_row(row: MetricValue) -> str:
    return f"{row.raw} ([{' '.join(row.labels)}]) -> {row.value:f}"


def format_tables(tables: Mapping[str, Mapping[str, List[MetricValue]]]) -> str:
    lines: List[str] = []
    for program, program_tables in tables.items():
        lines.append(f"## Program: {program}\n\n")
        for name, rows in program_tables.items():
            lines.append(f"### Table: {name}\n\n")
            lines.append("```\n")
            for row in rows:
                lines.append(format_row(row) + "\n")
            lines.append("```\n\n")
    return "".join(lines)


def tables_app(exporter: Exporter) -> Callable[[Dict, Callable], Iterable[bytes]]:
    """WSGI application printing every table the exporter reads."""

    def app(environ: Dict, start_response: Callable) -> Iterable[bytes]:
        del environ
        headers = [("Content-Type", "text/plain; charset=utf-8")]
        try:
            body = format_tables(exporter.export_tables())
        except TableDumpError as exc:
            LOG.error("Error dumping tables: %s", exc)
            start_response("500 Internal Server Error", headers)
            return [f"{exc}\n".encode("utf-8")]
        start_response("200 OK", headers)
        return [body.encode("utf-8")]

    return app
