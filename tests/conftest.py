"""Shared fixtures. No test touches the network: every HttpClient is built on a FakeSession from helpers."""

from __future__ import annotations

import pytest

from rules import AuditConfig


@pytest.fixture
def config():
    return AuditConfig()
