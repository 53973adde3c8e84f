import threading

import pytest

from ebpf_exporter.config import DecoderSpec, Label
from ebpf_exporter.decoders import (
    DecoderError,
    DecoderSet,
    KsymDecoder,
    SkipLabelSet,
    StaticMapDecoder,
    StringDecoder,
)
from ebpf_exporter.decoders.regexp import compile_pattern


def _label(*specs):
    return Label(name="field", decoders=tuple(specs))


def test_label_without_decoders_keeps_raw_value():
    assert DecoderSet().decode("sda", _label()) == "sda"


def test_decoder_chain_applies_in_order():
    label = _label(
        DecoderSpec(name="uint"),
        DecoderSpec(name="static_map", static_map={"1": "write", "0": "read"}),
    )
    assert DecoderSet().decode("0x1", label) == "write"


def test_string_decoder_strips_quotes():
    assert StringDecoder().decode('"sda"', DecoderSpec(name="string")) == "sda"
    assert StringDecoder().decode("sda", DecoderSpec(name="string")) == "sda"


def test_static_map_unknown_value():
    spec = DecoderSpec(name="static_map", static_map={"1": "write"})
    assert StaticMapDecoder().decode("7", spec) == "unknown:7"


def test_regexp_decoder_skips_non_matching():
    decoders = DecoderSet()
    label = _label(DecoderSpec(name="regexp", regexps=("^sd", "^nvme")))

    assert decoders.decode("nvme0n1", label) == "nvme0n1"
    with pytest.raises(SkipLabelSet):
        decoders.decode("loop0", label)


def test_regexp_decoder_invalid_pattern():
    label = _label(DecoderSpec(name="regexp", regexps=("(",)))
    with pytest.raises(DecoderError):
        DecoderSet().decode("sda", label)


def test_regexp_patterns_compiled_once():
    compile_pattern.cache_clear()
    label = _label(DecoderSpec(name="regexp", regexps=("^sd",)))
    decoders = DecoderSet()

    for value in ("sda", "sdb", "sdc"):
        decoders.decode(value, label)

    info = compile_pattern.cache_info()
    assert (info.misses, info.hits) == (1, 2)


def test_regexp_decoder_concurrent_decodes():
    decoders = DecoderSet()
    labels = [_label(DecoderSpec(name="regexp", regexps=(f"^sd{i}",))) for i in range(16)]
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        for i, label in enumerate(labels):
            results.append(decoders.decode(f"sd{i}x", label) == f"sd{i}x")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8 * len(labels)
    assert all(results)


def test_uint_decoder_rejects_garbage():
    with pytest.raises(DecoderError):
        DecoderSet().decode("abc", _label(DecoderSpec(name="uint")))


def test_unknown_decoder_name():
    with pytest.raises(DecoderError):
        DecoderSet().decode("x", _label(DecoderSpec(name="missing")))


def test_custom_decoder_registration():
    class Upper(StringDecoder):
        NAME = "upper"

        def decode(self, value, spec):
            return value.upper()

    decoders = DecoderSet()
    decoders.register(Upper())
    assert decoders.decode("sda", _label(DecoderSpec(name="upper"))) == "SDA"


def test_ksym_decoder_resolves_addresses(tmp_path):
    kallsyms = tmp_path / "kallsyms"
    kallsyms.write_text(
        "ffffffff81000000 T _stext\n"
        "ffffffff81234560 T blk_account_io_completion\n"
        "ffffffffc0001000 t helper\t[mod]\n"
    )
    decoder = KsymDecoder(kallsyms)
    spec = DecoderSpec(name="ksym")

    assert decoder.decode("0xffffffff81234560", spec) == "blk_account_io_completion"
    assert decoder.decode("0xffffffffc0001000", spec) == "helper"
    assert decoder.decode("0x10", spec) == "unknown_addr:0x10"


def test_ksym_decoder_missing_file(tmp_path):
    decoder = KsymDecoder(tmp_path / "missing")
    with pytest.raises(DecoderError):
        decoder.decode("0x10", DecoderSpec(name="ksym"))
