import pytest

from ebpf_exporter.parsing import UINT64_MAX, parse_uint


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10", 10),
        ("0", 0),
        ("0x1f", 31),
        ("0X1F", 31),
        ("0o17", 15),
        ("017", 15),
        ("0b101", 5),
        ("18446744073709551615", UINT64_MAX),
    ],
)
def test_parse_uint_accepts_prefixed_literals(text, expected):
    assert parse_uint(text) == expected


REJECTED = [
    "",
    "-1",
    "+1",
    "abc",
    "0x",
    "1.5",
    "0x-1",
    "09",
    "18446744073709551616",
    " 42 ",
    "42\n",
    "0x 1f",
    # Arabic-Indic and fullwidth digits
    "\u0661\u0662",
    "0x\uff11",
]


@pytest.mark.parametrize("text", REJECTED)
def test_parse_uint_rejects_invalid_values(text):
    with pytest.raises(ValueError):
        parse_uint(text)
