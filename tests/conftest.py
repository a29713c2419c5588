"""Pytest configuration and fixtures.

Provides environment isolation, marker registration and a few shared
fragments. All isolation fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from datetime import UTC, datetime
import logging
import os
from typing import Any

import pytest

from kiln.interpolate import InterpolationContext

# Fixed build start time: 2024-01-02T03:04:05Z.
INIT_TIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
BUILD_UUID = "0179a2b3-c4d5-e6f7-0123-456789abcdef"

_PROVIDER_ENV_PREFIXES = ("AWS_", "CLOUDSTACK_", "SDC_", "ALICLOUD_", "KILN_")

# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Invariants every builder must keep",
        "integration: Tests that combine loaders, files and resolution",
        "slow: Tests that take >1 second",
        "allow_dotenv: Let python-dotenv read .env files",
        "allow_env_pollution: Keep provider environment variables",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears AWS_*, CLOUDSTACK_*, SDC_*, ALICLOUD_* and KILN_* variables so
    credential fallbacks and overlays only see what a test sets itself.
    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith(_PROVIDER_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Keep kiln debug records out of captured output unless asked for."""
    logging.getLogger("kiln").setLevel(logging.INFO)


# =============================================================================
# Shared Inputs
# =============================================================================


@pytest.fixture
def context() -> InterpolationContext:
    """A deterministic interpolation context for the build named ``web``."""
    return InterpolationContext(
        build_name="web",
        user_variables={"region": "us-east-1", "owner": "099720109477"},
        init_time=INIT_TIME,
        build_uuid=BUILD_UUID,
    )


@pytest.fixture
def existing_file(tmp_path):
    """A file that exists for the duration of the test."""
    path = tmp_path / "present.txt"
    path.write_text("x")
    return str(path)


@pytest.fixture
def ebs_fragment() -> dict[str, Any]:
    """Smallest fragment that resolves cleanly for ``amazon-ebs``."""
    return {
        "build_name": "web",
        "region": "us-east-1",
        "ami_name": "web-{{ timestamp }}",
        "source_ami": "ami-0123456789",
        "instance_type": "t2.micro",
        "ssh_username": "ubuntu",
    }
