"""
Tests for environment based configuration helpers.
"""

import importlib

import pytest

from p1telegram import config


class TestEnvHelpers:
    @pytest.mark.parametrize("value", ["true", "1", "YES", "on"])
    def test_bool_true(self, monkeypatch, value: str) -> None:
        monkeypatch.setenv("P1_TEST_FLAG", value)
        assert config._get_bool_env("P1_TEST_FLAG", False) is True

    def test_bool_default(self, monkeypatch) -> None:
        monkeypatch.delenv("P1_TEST_FLAG", raising=False)
        assert config._get_bool_env("P1_TEST_FLAG", True) is True

    def test_int_invalid_falls_back(self, monkeypatch) -> None:
        monkeypatch.setenv("P1_TEST_INT", "five")
        assert config._get_int_env("P1_TEST_INT", 5) == 5


class TestMqttUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("mqtt://broker", ("broker", 1883, "tcp", False, None)),
            ("mqtts://broker:9999", ("broker", 9999, "tcp", True, None)),
            ("ws://broker/mqtt", ("broker", 80, "websockets", False, "/mqtt")),
            ("wss://broker", ("broker", 443, "websockets", True, None)),
        ],
    )
    def test_schemes(self, url: str, expected: tuple) -> None:
        assert config._parse_mqtt_url(url) == expected

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(ValueError):
            config._parse_mqtt_url("http://broker")


class TestParserSettings:
    def test_defaults(self) -> None:
        assert config.HOME_TIMEZONE == "Europe/Amsterdam"
        assert config.STRICT is False
        assert config.POWER_SAMPLE_MINUTES == 5

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("P1_HOME_TIMEZONE", "Europe/Brussels")
        monkeypatch.setenv("P1_STRICT", "true")
        monkeypatch.setenv("P1_POWER_SAMPLE_MINUTES", "15")
        try:
            reloaded = importlib.reload(config)
            assert reloaded.HOME_TIMEZONE == "Europe/Brussels"
            assert reloaded.STRICT is True
            assert reloaded.POWER_SAMPLE_MINUTES == 15
        finally:
            monkeypatch.undo()
            importlib.reload(config)
