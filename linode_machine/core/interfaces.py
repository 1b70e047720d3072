"""Collaborator protocols used by the provisioner and lifecycle controller."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol


class ComputeAPI(Protocol):
    """Remote compute operations (implemented by ``LinodeAPI``)."""

    def create_instance(self, request: Mapping[str, Any]) -> dict[str, Any]: ...

    def get_instance(self, instance_id: int) -> dict[str, Any]: ...

    def list_instance_configs(self, instance_id: int) -> list[dict[str, Any]]: ...

    def update_instance_config(
        self,
        instance_id: int,
        config_id: int,
        helpers: Mapping[str, bool],
        kernel: str | None = None,
    ) -> None: ...

    def boot_instance(self, instance_id: int, config_id: int | None = None) -> None: ...

    def shutdown_instance(self, instance_id: int) -> None: ...

    def reboot_instance(self, instance_id: int) -> None: ...

    def delete_instance(self, instance_id: int) -> None: ...

    def get_stackscript(self, script_id: int) -> dict[str, Any]: ...

    def list_stackscripts(self, label: str) -> list[dict[str, Any]]: ...


class KeyMaterialProvider(Protocol):
    """Local SSH key generation (implemented by ``SSHKeyManager``)."""

    def ensure_key_pair(self, key_path: str | Path) -> str: ...
