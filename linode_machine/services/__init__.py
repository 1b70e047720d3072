"""Provider-agnostic services."""

from __future__ import annotations

from linode_machine.services.ssh import SSHKeyManager, public_key_path

__all__ = ["SSHKeyManager", "public_key_path"]
