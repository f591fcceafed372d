"""
Tests for address parsing, server.properties and env helpers
"""

import logging

import pytest

from mc_rcon import util
from mc_rcon.errors import InvalidConfig
from mc_rcon.util import log_level, parse_address, rcon_props, read_properties


class TestParseAddress:

    @pytest.mark.parametrize("value,expected", [
        ("localhost:25575", ("127.0.0.1", 25575)),
        ("localhost", ("127.0.0.1", 25575)),
        ("play.example.com:25580", ("play.example.com", 25580)),
        ("10.0.0.5", ("10.0.0.5", 25575)),
        ("[::1]:25575", ("::1", 25575)),
        ("[::1]", ("::1", 25575)),
        ("::1", ("::1", 25575)),
    ])
    def test_valid(self, value, expected):
        assert parse_address(value) == expected

    @pytest.mark.parametrize("value", ["", ":25575", "host:", "host:abc", "host:70000", "[::1", "[::1]x"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_address(value)


class TestProperties:

    def test_read(self, tmp_path):
        p = tmp_path / "server.properties"
        p.write_text("#Minecraft server properties\nenable-rcon=true\nrcon.port=25580\nrcon.password=s3cr=t\n\nmotd=A Server\n")
        props = read_properties(p)
        assert props["enable-rcon"] == "true"
        assert props["rcon.password"] == "s3cr=t"
        assert rcon_props(p) == (25580, "s3cr=t")

    def test_missing_file(self, tmp_path):
        assert read_properties(tmp_path / "nope") == {}
        assert rcon_props(tmp_path / "nope") == (None, None)

    def test_non_numeric_port(self, tmp_path):
        p = tmp_path / "server.properties"
        p.write_text("rcon.port=abc\n")
        with pytest.raises(InvalidConfig, match="not a number"):
            rcon_props(p)

    def test_unreadable_path(self, tmp_path):
        with pytest.raises(InvalidConfig, match="cannot read"):
            rcon_props(tmp_path)

    def test_blank_password(self, tmp_path):
        p = tmp_path / "server.properties"
        p.write_text("rcon.password=\n")
        assert rcon_props(p) == (None, None)


class TestEnv:

    def test_address_prefers_rcon_address(self, monkeypatch):
        monkeypatch.setenv("RCON_ADDRESS", "mc:1234")
        monkeypatch.setenv("RCON_PORT", "9999")
        assert util.env_address() == "mc:1234"

    def test_address_from_port(self, monkeypatch):
        monkeypatch.delenv("RCON_ADDRESS", raising=False)
        monkeypatch.setenv("RCON_PORT", "9999")
        assert util.env_address() == "localhost:9999"

    def test_default_address(self, monkeypatch):
        monkeypatch.delenv("RCON_ADDRESS", raising=False)
        monkeypatch.delenv("RCON_PORT", raising=False)
        assert util.env_address() == "localhost:25575"

    def test_password(self, monkeypatch):
        monkeypatch.setenv("RCON_PASSWORD", "pw")
        assert util.env_password() == "pw"
        monkeypatch.setenv("RCON_PASSWORD", "")
        assert util.env_password() is None


def test_log_levels():
    assert log_level(0) == logging.WARNING
    assert log_level(1) == logging.INFO
    assert log_level(2) == logging.DEBUG
    assert log_level(5) == logging.DEBUG


def test_ms():
    assert util.ms(0.0123) == "12.30ms"
