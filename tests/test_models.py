"""Unit tests for pydantic models and settings."""

import pytest
from pydantic import ValidationError

from serialmon.config import Settings, get_settings
from serialmon.enums import BAUD_RATES, FlowControl, Parity, SessionState
from serialmon.models import PortConfig
from serialmon.port import config_ext


class TestPortConfig:
    def test_defaults(self):
        cfg = PortConfig(baud_rate=9600)
        assert cfg.data_bits == 8
        assert cfg.flow_control is FlowControl.NONE
        assert cfg.parity is Parity.NONE
        assert cfg.stop_bits == 1

    @pytest.mark.parametrize("baud", BAUD_RATES)
    def test_allowed_baud_rates(self, baud):
        assert PortConfig(baud_rate=baud).baud_rate == baud

    @pytest.mark.parametrize("field,value", [
        ("baud_rate", 1234),
        ("data_bits", 9),
        ("stop_bits", 3),
        ("parity", "mark"),
        ("flow_control", "xonxoff"),
    ])
    def test_rejects_invalid_values(self, field, value):
        kwargs = {"baud_rate": 9600, field: value}
        with pytest.raises(ValidationError):
            PortConfig(**kwargs)

    def test_frozen(self):
        cfg = PortConfig(baud_rate=9600)
        with pytest.raises(ValidationError):
            cfg.baud_rate = 115200


class TestSessionState:
    def test_closed_is_idle(self):
        assert SessionState.CLOSED is SessionState.IDLE


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.line_width == 16
        assert s.notification_lifetime == 6.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SERIAL_MONITOR_LINE_WIDTH", "8")
        monkeypatch.setenv("SERIAL_MONITOR_NOTIFICATION_LIFETIME", "2.5")
        get_settings.cache_clear()
        try:
            s = get_settings()
            assert s.line_width == 8
            assert s.notification_lifetime == 2.5
        finally:
            get_settings.cache_clear()

    def test_port_cfg_env(self, monkeypatch):
        monkeypatch.setenv("SERIAL_PORT", "/dev/ttyACM0")
        config_ext.get.cache_clear()
        try:
            assert config_ext.get().serial_port == "/dev/ttyACM0"
        finally:
            config_ext.get.cache_clear()
