import dataclasses

import pytest

from linode_machine.core.models import Instance, StackScriptRef
from linode_machine.providers.exceptions import (
    AddressError,
    ConfigurationError,
    KeyMaterialError,
    OperationCancelledError,
    ProviderAPIError,
    WaitTimeoutError,
)
from linode_machine.providers.linode.compute import InstanceProvisioner
from linode_machine.providers.linode.state import InstanceStatus
from tests.unit.fakes import FakeEvent, FakeKeyManager
from tests.unit.fakes.fake_key_manager import FAKE_PUBLIC_KEY


@pytest.fixture
def provisioner(fake_api, fake_key_manager, fake_clock) -> InstanceProvisioner:
    return InstanceProvisioner(fake_api, fake_key_manager, clock=fake_clock)


class TestBuildCreateRequest:
    def test_basic_request(self, provisioner, make_config) -> None:
        request = provisioner.build_create_request(make_config(), FAKE_PUBLIC_KEY)

        assert request == {
            "region": "us-east",
            "type": "g6-standard-4",
            "root_pass": "s3cret-pass",
            "authorized_keys": [FAKE_PUBLIC_KEY.strip()],
            "image": "linode/ubuntu18.04",
            "swap_size": 512,
            "private_ip": False,
            "booted": True,
            "label": "test-machine",
        }

    def test_private_ip_instance_created_unbooted(self, provisioner, make_config) -> None:
        config = make_config(linode_create_private_ip=True)

        request = provisioner.build_create_request(config, FAKE_PUBLIC_KEY)

        assert request["private_ip"] is True
        assert request["booted"] is False

    def test_comma_lists_split(self, provisioner, make_config) -> None:
        config = make_config(linode_authorized_users="alice,bob", linode_tags="web,prod")

        request = provisioner.build_create_request(config, FAKE_PUBLIC_KEY)

        assert request["authorized_users"] == ["alice", "bob"]
        assert request["tags"] == ["web", "prod"]

    def test_empty_label_omitted(self, provisioner, make_config) -> None:
        request = provisioner.build_create_request(make_config(machine_name=""), FAKE_PUBLIC_KEY)

        assert "label" not in request

    def test_resolved_stackscript_included(self, provisioner, make_config) -> None:
        config = dataclasses.replace(
            make_config(linode_stackscript_data='{"hostname": "web"}'),
            stackscript=StackScriptRef(script_id=11, owner="alice", label="setup"),
        )

        request = provisioner.build_create_request(config, FAKE_PUBLIC_KEY)

        assert request["stackscript_id"] == 11
        assert request["stackscript_data"] == {"hostname": "web"}

    def test_unresolved_stackscript_excluded(self, provisioner, make_config) -> None:
        config = make_config(linode_stackscript="alice/setup")

        request = provisioner.build_create_request(config, FAKE_PUBLIC_KEY)

        assert "stackscript_id" not in request


class TestProvision:
    def test_public_only(self, provisioner, fake_api, make_config, tmp_path) -> None:
        instance = provisioner.provision(make_config(), tmp_path / "id_rsa")

        assert instance.public_ip == "203.0.113.9"
        assert instance.private_ip is None
        assert instance.status == "running"
        assert instance.label == "test-machine"
        assert fake_api.call_names() == ["create_instance", "get_instance"]

    def test_uses_key_from_key_manager(
        self, provisioner, fake_api, fake_key_manager, make_config, tmp_path
    ) -> None:
        provisioner.provision(make_config(), tmp_path / "id_rsa")

        assert fake_key_manager.requested_paths == [tmp_path / "id_rsa"]
        assert fake_api.create_requests[0]["authorized_keys"] == [FAKE_PUBLIC_KEY.strip()]

    def test_private_ip_flow(self, provisioner, fake_api, make_config, tmp_path) -> None:
        fake_api.create_addresses = ["10.0.0.5", "203.0.113.9"]
        config = make_config(linode_create_private_ip=True)

        instance = provisioner.provision(config, tmp_path / "id_rsa")

        assert instance.public_ip == "203.0.113.9"
        assert instance.private_ip == "10.0.0.5"
        assert instance.config_id == instance.instance_id * 10
        assert fake_api.call_names() == [
            "create_instance",
            "list_instance_configs",
            "update_instance_config",
            "boot_instance",
            "get_instance",
        ]
        update = fake_api.calls[2]
        boot = fake_api.calls[3]
        assert update == (
            "update_instance_config",
            instance.instance_id,
            instance.config_id,
            {"network": True},
            None,
        )
        assert boot == ("boot_instance", instance.instance_id, instance.config_id)
        assert fake_api.configs[instance.instance_id][0]["helpers"]["network"] is True

    def test_kernel_flow(self, provisioner, fake_api, make_config, tmp_path) -> None:
        config = make_config(linode_kernel="linode/grub2")

        instance = provisioner.provision(config, tmp_path / "id_rsa")

        assert fake_api.create_requests[0]["booted"] is False
        assert fake_api.calls[2] == (
            "update_instance_config",
            instance.instance_id,
            instance.config_id,
            {},
            "linode/grub2",
        )
        assert fake_api.calls[3] == ("boot_instance", instance.instance_id, instance.config_id)
        assert fake_api.configs[instance.instance_id][0]["helpers"]["network"] is False

    def test_only_private_address_without_request_fails(
        self, provisioner, fake_api, make_config, tmp_path
    ) -> None:
        fake_api.create_addresses = ["10.0.0.5"]
        created: list[Instance] = []

        with pytest.raises(AddressError, match="Linode IP Address is not found") as exc_info:
            provisioner.provision(make_config(), tmp_path / "id_rsa", on_created=created.append)

        assert exc_info.value.instance_id == created[0].instance_id
        assert created[0].instance_id in fake_api.instances
        assert "delete_instance" not in fake_api.call_names()

    def test_requested_private_address_missing_fails(
        self, provisioner, fake_api, make_config, tmp_path
    ) -> None:
        fake_api.create_addresses = ["203.0.113.9"]
        config = make_config(linode_create_private_ip=True)

        with pytest.raises(AddressError, match="Private IP Address is not found"):
            provisioner.provision(config, tmp_path / "id_rsa")

        assert "boot_instance" not in fake_api.call_names()

    def test_missing_boot_config_fails(
        self, provisioner, fake_api, make_config, tmp_path
    ) -> None:
        fake_api.create_addresses = ["10.0.0.5", "203.0.113.9"]
        fake_api.create_configs = False
        config = make_config(linode_create_private_ip=True)

        with pytest.raises(ConfigurationError, match="Linode Config was not found") as exc_info:
            provisioner.provision(config, tmp_path / "id_rsa")

        assert exc_info.value.instance_id == 1000
        assert exc_info.value.stage == "boot-config"
        assert "boot_instance" not in fake_api.call_names()

    def test_key_failure_creates_nothing(self, fake_api, make_config, tmp_path) -> None:
        provisioner = InstanceProvisioner(fake_api, FakeKeyManager(fail=True))

        with pytest.raises(KeyMaterialError):
            provisioner.provision(make_config(), tmp_path / "id_rsa")

        assert fake_api.calls == []

    def test_create_failure_not_retried(self, provisioner, fake_api, make_config, tmp_path) -> None:
        fake_api.errors["create_instance"] = ProviderAPIError(
            "Region not available", status=400, errors=["Region not available"]
        )

        with pytest.raises(ProviderAPIError, match="Region not available"):
            provisioner.provision(make_config(), tmp_path / "id_rsa")

        assert fake_api.call_names() == ["create_instance"]

    def test_on_created_called_before_wait(
        self, provisioner, fake_api, make_config, tmp_path
    ) -> None:
        seen: list[list[str]] = []

        provisioner.provision(
            make_config(),
            tmp_path / "id_rsa",
            on_created=lambda instance: seen.append(fake_api.call_names()),
        )

        assert seen == [["create_instance"]]

    def test_waits_through_intermediate_statuses(
        self, provisioner, fake_api, fake_clock, make_config, tmp_path
    ) -> None:
        fake_api.status_sequence = ["provisioning", "booting", "running"]
        event = FakeEvent(fake_clock)

        instance = provisioner.provision(make_config(), tmp_path / "id_rsa", cancel_event=event)

        assert instance.status == "running"
        assert event.waits == [3.0, 3.0]


class TestWaitForStatus:
    def test_timeout(self, fake_api, fake_key_manager, fake_clock) -> None:
        instance_id = fake_api.add_instance(status="provisioning")
        provisioner = InstanceProvisioner(
            fake_api, fake_key_manager, boot_timeout=10, poll_interval=3, clock=fake_clock
        )
        event = FakeEvent(fake_clock)

        with pytest.raises(WaitTimeoutError, match="wait for machine running failed"):
            provisioner.wait_for_status(instance_id, InstanceStatus.RUNNING, cancel_event=event)

        assert event.waits == [3, 3, 3, 1]
        assert fake_clock.now == 10

    def test_timeout_is_a_timeout_error(self, fake_api, fake_key_manager, fake_clock) -> None:
        instance_id = fake_api.add_instance(status="offline")
        provisioner = InstanceProvisioner(
            fake_api, fake_key_manager, boot_timeout=0, clock=fake_clock
        )

        with pytest.raises(TimeoutError):
            provisioner.wait_for_status(instance_id, InstanceStatus.RUNNING)

    def test_cancelled(self, fake_api, fake_key_manager, fake_clock) -> None:
        instance_id = fake_api.add_instance(status="booting")
        provisioner = InstanceProvisioner(fake_api, fake_key_manager, clock=fake_clock)
        event = FakeEvent(fake_clock, set_after=2)

        with pytest.raises(OperationCancelledError):
            provisioner.wait_for_status(instance_id, InstanceStatus.RUNNING, cancel_event=event)

        assert fake_api.call_names() == ["get_instance", "get_instance"]

    def test_already_cancelled_makes_no_calls(self, fake_api, fake_key_manager, fake_clock) -> None:
        event = FakeEvent(fake_clock)
        event.set()

        with pytest.raises(OperationCancelledError):
            InstanceProvisioner(fake_api, fake_key_manager, clock=fake_clock).wait_for_status(
                1, InstanceStatus.RUNNING, cancel_event=event
            )

        assert fake_api.calls == []

    def test_poll_interval_bounded_below(self, fake_api, fake_key_manager) -> None:
        provisioner = InstanceProvisioner(fake_api, fake_key_manager, poll_interval=0.01)

        assert provisioner.poll_interval == 1.0

    def test_default_deadline_is_180_seconds(self, fake_api, fake_key_manager) -> None:
        assert InstanceProvisioner(fake_api, fake_key_manager).boot_timeout == 180
