"""Pytest configuration and shared fixtures."""

import os

# до импорта serialmon: без файлов логов и без железа
os.environ.setdefault("SERIAL_MONITOR_LOG_TO_FILE", "0")
os.environ.setdefault("SERIAL_MONITOR_TRANSPORT", "loopback")

import pytest

from serialmon.config import Settings


@pytest.fixture
def settings():
    """Settings with notifications that outlive a test."""
    return Settings(transport="loopback", line_width=8, notification_lifetime=60.0)
