"""Records shared between the configuration layer and the provisioner."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StackScriptRef:
    """Reference to a StackScript.

    Either ``script_id`` is set (a concrete reference), or ``owner`` and
    ``label`` are set and must be resolved against the catalog before use.
    A resolved reference carries all three.

    Attributes
    ----------
    script_id : int | None
        Numeric StackScript identifier
    owner : str | None
        Username of the StackScript author
    label : str | None
        StackScript label
    """

    script_id: int | None = None
    owner: str | None = None
    label: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.script_id is not None

    def __str__(self) -> str:
        if self.owner and self.label:
            if self.script_id is not None:
                return f"{self.script_id}: {self.owner}/{self.label}"
            return f"{self.owner}/{self.label}"
        return str(self.script_id)


@dataclass
class Instance:
    """In-memory record of the instance created by this driver.

    ``status`` holds the last status seen in the create response and is only
    informational: state queries always re-fetch the remote status.

    Attributes
    ----------
    instance_id : int
        Remote Linode identifier
    label : str
        Label as stored by the server
    region : str
        Canonical region id reported by the server
    status : str
        Remote status in the provider vocabulary
    public_ip : str | None
        Public IPv4 address
    private_ip : str | None
        Private IPv4 address, only when one was requested
    config_id : int | None
        Boot configuration used to boot the instance, when one was chosen
    """

    instance_id: int
    label: str
    region: str
    status: str
    public_ip: str | None = None
    private_ip: str | None = None
    config_id: int | None = None
