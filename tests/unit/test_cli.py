from unittest.mock import MagicMock, patch

import pytest
from prometheus_client import CollectorRegistry

from ebpf_exporter.cli import ebpf_exporter as cli
from ebpf_exporter.exceptions import ModuleLoadError


def test_parse_listen_address():
    assert cli.parse_listen_address(":9435") == ("", 9435)
    assert cli.parse_listen_address("127.0.0.1:8080") == ("127.0.0.1", 8080)
    assert cli.parse_listen_address("[::1]:8080") == ("::1", 8080)
    assert cli.parse_listen_address("9000") == ("", 9000)
    with pytest.raises(ValueError):
        cli.parse_listen_address("localhost:http")


def test_parse_args_defaults(tmp_path):
    args = cli.parse_args(["--config", str(tmp_path / "c.yaml")])
    assert args.listen_address == ":9435"
    assert args.log == "INFO"
    assert args.bcc_path == []


def _call(app, path):
    start_response = MagicMock()
    body = b"".join(app({"PATH_INFO": path, "REQUEST_METHOD": "GET", "QUERY_STRING": ""}, start_response))
    return start_response.call_args[0][0], body


def test_build_app_routes():
    exporter = MagicMock()
    exporter.export_tables.return_value = {"bio": {}}
    app = cli.build_app(exporter, CollectorRegistry())

    assert _call(app, "/tables") == ("200 OK", b"## Program: bio\n\n")
    status, _ = _call(app, "/metrics")
    assert status.startswith("200")
    status, _ = _call(app, "/nope")
    assert status == "404 Not Found"


def test_main_fails_on_attach_error(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("programs:\n  - name: bio\n    code: broken\n")

    with patch.object(cli, "BCCAttachCapability") as capability_cls, patch.object(cli, "make_server") as make_server:
        capability_cls.return_value.load_module.side_effect = ModuleLoadError("boom")
        assert cli.main(["--config", str(config)]) == 1

    make_server.assert_not_called()


def test_main_fails_on_missing_config(tmp_path):
    with patch.object(cli, "make_server") as make_server:
        assert cli.main(["--config", str(tmp_path / "missing.yaml")]) == 1
    make_server.assert_not_called()


def test_main_fails_on_malformed_label_size(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "programs:\n"
        "  - name: bio\n"
        "    metrics:\n"
        "      counters:\n"
        "        - name: requests\n"
        "          labels:\n"
        "            - name: disk\n"
        "              size: big\n"
    )

    with patch.object(cli, "BCCAttachCapability") as capability_cls, patch.object(cli, "make_server") as make_server:
        assert cli.main(["--config", str(config)]) == 1

    capability_cls.assert_not_called()
    make_server.assert_not_called()


def test_main_serves_until_interrupted(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("programs:\n  - name: bio\n")

    with patch.object(cli, "BCCAttachCapability"), patch.object(cli, "make_server") as make_server:
        make_server.return_value.serve_forever.side_effect = KeyboardInterrupt
        assert cli.main(["--config", str(config), "--listen-address", "127.0.0.1:0"]) == 0

    host, port, _app = make_server.call_args[0]
    assert (host, port) == ("127.0.0.1", 0)
    make_server.return_value.server_close.assert_called_once()
