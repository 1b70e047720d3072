"""Pytest configuration and fixtures for linode-machine tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from linode_machine.core.config import Configuration, ConfigValidator
from linode_machine.driver import LinodeDriver
from tests.unit.fakes import FakeClock, FakeKeyManager, FakeLinodeAPI


@pytest.fixture
def fake_api() -> FakeLinodeAPI:
    return FakeLinodeAPI()


@pytest.fixture
def fake_key_manager() -> FakeKeyManager:
    return FakeKeyManager()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def base_options() -> dict[str, Any]:
    """Minimal valid option mapping."""
    return {"linode-token": "test-token", "linode-root-pass": "s3cret-pass"}


@pytest.fixture
def make_config(base_options: dict[str, Any]) -> Callable[..., Configuration]:
    """Build a validated Configuration from option overrides.

    Returns
    -------
    callable
        Function taking option name/value pairs and an optional machine name
    """

    def _make(machine_name: str = "test-machine", **options: Any) -> Configuration:
        merged = dict(base_options)
        merged.update({key.replace("_", "-"): value for key, value in options.items()})
        return ConfigValidator().validate(merged, machine_name)

    return _make


@pytest.fixture
def driver(
    tmp_path: Path, fake_api: FakeLinodeAPI, fake_key_manager: FakeKeyManager
) -> LinodeDriver:
    """Unconfigured driver wired to the fake API and key manager."""
    return LinodeDriver(
        machine_name="test-machine",
        store_path=str(tmp_path),
        api_factory=lambda token, ua_prefix: fake_api,
        key_manager=fake_key_manager,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return tmp_path / "linode-machine.yaml"


@pytest.fixture
def write_config(config_file: Path) -> Callable[[dict[str, Any]], Path]:
    """Helper fixture to write option data to the config file.

    Returns
    -------
    callable
        Function that takes a dict, writes it as YAML and returns the path
    """

    def _write(config_data: dict[str, Any]) -> Path:
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)
        return config_file

    return _write
