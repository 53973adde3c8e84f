from typing import Dict, List, Tuple

import pytest

from ebpf_exporter.config import Counter, Histogram, Label, Program


class FakeTables:
    """Table capability serving canned rows per (module, table)."""

    def __init__(self) -> None:
        self.rows: Dict[Tuple[str, str], List[Tuple[str, str]]] = {}
        self.reads: List[Tuple[str, str]] = []

    def set(self, module: str, table: str, rows: List[Tuple[str, str]]) -> None:
        self.rows[(module, table)] = rows

    def iterate(self, module, table_name):
        self.reads.append((module, table_name))
        return iter(list(self.rows.get((module, table_name), [])))


class FakeAttach:
    """Attach capability recording calls; modules are the program names."""

    def __init__(self, fail_on=None) -> None:
        self.calls: List[Tuple] = []
        self.fail_on = fail_on or {}

    def _maybe_fail(self, step, *key):
        if (step,) + key in self.fail_on:
            raise OSError(self.fail_on[(step,) + key])

    def load_module(self, program):
        self.calls.append(("load_module", program.name))
        self._maybe_fail("load_module", program.name)
        return program.name

    def load_function(self, module, fn_name):
        self.calls.append(("load_function", module, fn_name))
        self._maybe_fail("load_function", module, fn_name)
        return fn_name

    def attach_entry(self, module, symbol, fn_name):
        self.calls.append(("attach_entry", module, symbol, fn_name))
        self._maybe_fail("attach_entry", module, symbol)

    def attach_return(self, module, symbol, fn_name):
        self.calls.append(("attach_return", module, symbol, fn_name))
        self._maybe_fail("attach_return", module, symbol)


@pytest.fixture
def fake_tables():
    return FakeTables()


@pytest.fixture
def fake_attach():
    return FakeAttach()


@pytest.fixture
def disk_program():
    """Program with one counter and one histogram over disk/op keys."""
    disk = Label(name="disk")
    op = Label(name="op")
    return Program(
        name="bio",
        kprobes={"blk_start_request": "trace_req_start"},
        kretprobes={"blk_account_io_completion": "trace_req_completion"},
        counters=(Counter(name="bio_requests_total", help="Requests", table="requests", labels=(disk, op)),),
        histograms=(
            Histogram(
                name="bio_latency",
                help="Latency",
                table="latency",
                group_labels=(disk, op),
                bucket_label=Label(name="bucket"),
            ),
        ),
    )


@pytest.fixture
def failing_attach():
    """Factory for attach capabilities failing at given (step, *args) points."""
    return lambda fail_on: FakeAttach(fail_on=fail_on)
