"""Test fake implementations for dependency injection testing."""

from tests.unit.fakes.fake_clock import FakeClock, FakeEvent
from tests.unit.fakes.fake_key_manager import FakeKeyManager
from tests.unit.fakes.fake_linode_api import FakeLinodeAPI

__all__ = ["FakeClock", "FakeEvent", "FakeKeyManager", "FakeLinodeAPI"]
