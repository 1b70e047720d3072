"""Local SSH key material for created machines."""

import logging
import os
from pathlib import Path

import paramiko

from linode_machine.constants import SSH_KEY_BITS
from linode_machine.providers.exceptions import KeyMaterialError

logger = logging.getLogger(__name__)


def public_key_path(key_path: str | Path) -> Path:
    """Return the public key path for a private key path.

    Parameters
    ----------
    key_path : str | Path
        Private key file path

    Returns
    -------
    Path
        The private key path with ``.pub`` appended
    """
    return Path(f"{key_path}.pub")


class SSHKeyManager:
    """Generate or load the RSA key pair used to log in to a machine.

    Parameters
    ----------
    bits : int
        RSA modulus size for newly generated keys
    """

    def __init__(self, bits: int = SSH_KEY_BITS) -> None:
        self.bits = bits

    def ensure_key_pair(self, key_path: str | Path) -> str:
        """Generate the key pair at ``key_path`` unless it already exists.

        Parameters
        ----------
        key_path : str | Path
            Private key file path; the public key is written next to it with
            a ``.pub`` suffix

        Returns
        -------
        str
            Public key in OpenSSH ``authorized_keys`` format

        Raises
        ------
        KeyMaterialError
            If the key cannot be generated, written or read
        """
        key_path = Path(key_path)
        pub_path = public_key_path(key_path)

        try:
            if key_path.exists():
                key = paramiko.RSAKey.from_private_key_file(str(key_path))
                logger.debug("Using existing SSH key %s", key_path)
            else:
                key = self._generate(key_path)

            if not pub_path.exists():
                pub_path.write_text(f"{key.get_name()} {key.get_base64()}\n")

            return pub_path.read_text()
        except (OSError, paramiko.SSHException) as e:
            raise KeyMaterialError(
                f"Failed to prepare SSH key {key_path}: {e}", stage="ssh-key"
            ) from e

    def _generate(self, key_path: Path) -> paramiko.RSAKey:
        logger.info("Creating SSH key...")
        key_path.parent.mkdir(parents=True, exist_ok=True)

        key = paramiko.RSAKey.generate(bits=self.bits)
        key.write_private_key_file(str(key_path))
        os.chmod(key_path, 0o600)

        return key
