"""Fake SSHKeyManager for testing with dependency injection."""

from pathlib import Path

from linode_machine.providers.exceptions import KeyMaterialError

FAKE_PUBLIC_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQCfake linode-machine\n"


class FakeKeyManager:
    """Fake key manager that returns a fixed public key without touching disk.

    Parameters
    ----------
    public_key : str
        Key returned by :meth:`ensure_key_pair`
    fail : bool
        Raise ``KeyMaterialError`` instead of returning a key
    """

    def __init__(self, public_key: str = FAKE_PUBLIC_KEY, fail: bool = False) -> None:
        self.public_key = public_key
        self.fail = fail
        self.requested_paths: list[Path] = []

    def ensure_key_pair(self, key_path: str | Path) -> str:
        self.requested_paths.append(Path(key_path))
        if self.fail:
            raise KeyMaterialError(f"Failed to prepare SSH key {key_path}", stage="ssh-key")
        return self.public_key
