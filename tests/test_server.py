"""
Tests for the startup sequence and listener selection.
"""
import datetime
import ipaddress
import json
import socket
import ssl
import threading
import time
from unittest.mock import patch

import httpx
import pytest
import uvicorn
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from fastapi import FastAPI

from dumbr.core.config import ServerSettings
from dumbr.server import EXIT_OK, EXIT_STARTUP_FAILED, start_server


@pytest.fixture
def settings(make_templates, make_config):
    """Valid settings for a one-route server on port 8081."""
    def _settings(**overrides):
        values = {
            "templates": str(make_templates({"hello.template": "Hello"})),
            "port": "8081",
            "configuration": str(make_config([
                {"responseTemplateName": "hello.template", "resource": "/hi", "method": "GET"}
            ])),
        }
        values.update(overrides)
        return ServerSettings(**values)
    return _settings


@pytest.fixture
def self_signed_pair(tmp_path):
    """Write a throwaway key and certificate for 127.0.0.1, return their paths."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName([
                x509.DNSName("localhost"),
                x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
            ]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    key_path = tmp_path / "server.key"
    crt_path = tmp_path / "server.crt"
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ))
    crt_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    return str(key_path), str(crt_path)


def free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def live_server():
    """Stand-in for uvicorn.run that serves on a background thread until the test ends."""
    running = []

    def run(app, **options):
        server = uvicorn.Server(uvicorn.Config(app, **options))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        running.append((server, thread))
        deadline = time.monotonic() + 10
        while not server.started:
            if not thread.is_alive() or time.monotonic() > deadline:
                raise RuntimeError("uvicorn did not start")
            time.sleep(0.05)

    yield run

    for server, thread in running:
        server.should_exit = True
        thread.join(timeout=10)


class TestStartServer:
    """Test start_server"""

    def test_plain_http_without_tls_files(self, settings):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings())

        assert status == EXIT_OK
        mock_run.assert_called_once()
        app = mock_run.call_args[0][0]
        kwargs = mock_run.call_args[1]
        assert isinstance(app, FastAPI)
        assert kwargs["port"] == 8081
        assert kwargs["host"] == "0.0.0.0"
        assert "ssl_keyfile" not in kwargs
        assert "ssl_certfile" not in kwargs

    def test_tls_when_key_and_certificate_set(self, settings):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            start_server(settings(server_key="server.key", server_crt="server.crt"))

        kwargs = mock_run.call_args[1]
        assert kwargs["ssl_keyfile"] == "server.key"
        assert kwargs["ssl_certfile"] == "server.crt"
        assert kwargs["port"] == 8081

    @pytest.mark.parametrize("key,crt", [("server.key", ""), ("", "server.crt")])
    def test_plain_http_when_either_tls_file_blank(self, settings, key, crt):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            start_server(settings(server_key=key, server_crt=crt))

        kwargs = mock_run.call_args[1]
        assert "ssl_keyfile" not in kwargs
        assert "ssl_certfile" not in kwargs

    def test_app_serves_configured_routes(self, settings):
        from fastapi.testclient import TestClient

        with patch("dumbr.server.uvicorn.run") as mock_run:
            start_server(settings())

        client = TestClient(mock_run.call_args[0][0])
        assert client.get("/hi").text == "Hello"
        assert client.post("/hi").status_code == 404

    def test_missing_configuration_aborts_before_listening(self, settings, tmp_path):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(configuration=str(tmp_path / "missing.json")))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()

    def test_malformed_configuration_aborts(self, settings, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("not json")

        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(configuration=str(bad)))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()

    def test_missing_template_directory_aborts(self, settings, tmp_path):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(templates=str(tmp_path / "nowhere")))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()

    def test_malformed_log_config_aborts(self, settings, tmp_path, capsys):
        log_config = tmp_path / "log.json"
        log_config.write_text(json.dumps({"level": "shout"}))

        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(log_config=str(log_config)))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()
        assert "shout" in capsys.readouterr().err

    def test_non_numeric_port_aborts(self, settings):
        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(port="http"))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()

    def test_log_config_sets_uvicorn_level(self, settings, tmp_path):
        log_config = tmp_path / "log.json"
        log_config.write_text(json.dumps({"level": "debug", "outputPaths": ["stderr"]}))

        with patch("dumbr.server.uvicorn.run") as mock_run:
            start_server(settings(log_config=str(log_config)))

        assert mock_run.call_args[1]["log_level"] == 10

    def test_template_with_unknown_filter_does_not_abort(self, settings, make_templates):
        make_templates({"bad.template": "{{ x|nosuchfilter }}"})

        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings())

        assert status == EXIT_OK
        mock_run.assert_called_once()

    def test_non_utf8_log_config_aborts(self, settings, tmp_path, capsys):
        log_config = tmp_path / "log.json"
        log_config.write_bytes(b'{"level": "\xff"}')

        with patch("dumbr.server.uvicorn.run") as mock_run:
            status = start_server(settings(log_config=str(log_config)))

        assert status == EXIT_STARTUP_FAILED
        mock_run.assert_not_called()
        assert "Failed in building logger" in capsys.readouterr().err


class TestListener:
    """Test real listeners started through start_server"""

    def test_tls_listener_negotiates_with_configured_certificate(self, settings, self_signed_pair, live_server):
        key, crt = self_signed_pair
        port = free_port()

        with patch("dumbr.server.uvicorn.run", side_effect=live_server):
            status = start_server(settings(host="127.0.0.1", port=str(port), server_key=key, server_crt=crt))

        assert status == EXIT_OK
        trusted = ssl.create_default_context(cafile=crt)
        response = httpx.get(f"https://127.0.0.1:{port}/hi", verify=trusted)
        assert response.status_code == 200
        assert response.text == "Hello"

    def test_plain_listener_does_not_speak_tls(self, settings, live_server):
        port = free_port()

        with patch("dumbr.server.uvicorn.run", side_effect=live_server):
            start_server(settings(host="127.0.0.1", port=str(port)))

        assert httpx.get(f"http://127.0.0.1:{port}/hi").text == "Hello"
        with pytest.raises(httpx.ConnectError):
            httpx.get(f"https://127.0.0.1:{port}/hi", verify=False)


class TestServerSettings:
    """Test ServerSettings helpers"""

    def test_is_complete(self):
        assert ServerSettings(port="80", configuration="c.json").is_complete
        assert not ServerSettings(port="", configuration="c.json").is_complete
        assert not ServerSettings(port="80", configuration="").is_complete
        assert not ServerSettings(port="80", configuration="c.json", templates="").is_complete

    def test_use_tls(self):
        assert ServerSettings(port="80", configuration="c", server_key="k", server_crt="c").use_tls
        assert not ServerSettings(port="80", configuration="c", server_key="k").use_tls
        assert not ServerSettings(port="80", configuration="c", server_crt="c").use_tls
