"""StackScript resolution against the Linode catalog."""

from __future__ import annotations

import dataclasses
import logging

from linode_machine.core.config import Configuration
from linode_machine.core.interfaces import ComputeAPI
from linode_machine.core.models import StackScriptRef
from linode_machine.providers.exceptions import NotFoundError, ProviderNotFoundError

logger = logging.getLogger(__name__)


class StackScriptResolver:
    """Resolve StackScript references to concrete (id, owner, label) triples.

    Parameters
    ----------
    api : ComputeAPI
        Remote compute API used for catalog lookups
    """

    def __init__(self, api: ComputeAPI) -> None:
        self.api = api

    def resolve(self, config: Configuration) -> Configuration:
        """Resolve the configuration's StackScript reference.

        Parameters
        ----------
        config : Configuration
            Validated configuration

        Returns
        -------
        Configuration
            The same configuration when it carries no reference, otherwise a
            copy holding the resolved reference

        Raises
        ------
        NotFoundError
            If the StackScript does not exist, or no catalog entry matches
            both label and owner
        ProviderError
            If the catalog lookup fails for any other reason
        """
        ref = config.stackscript
        if ref is None:
            return config

        if ref.owner and ref.label:
            resolved = self.find_by_label(ref.owner, ref.label)
        else:
            resolved = self.fetch_by_id(ref.script_id)

        logger.debug("Resolved StackScript %s", resolved)
        return dataclasses.replace(config, stackscript=resolved)

    def fetch_by_id(self, script_id: int) -> StackScriptRef:
        """Fetch a StackScript by its numeric id.

        Raises
        ------
        NotFoundError
            If the API reports no StackScript with this id
        """
        try:
            script = self.api.get_stackscript(script_id)
        except ProviderNotFoundError as e:
            raise NotFoundError(
                f"StackScript {script_id} could not be used: {e.message}",
                stage="stackscript",
            ) from e

        return StackScriptRef(
            script_id=script["id"], owner=script["username"], label=script["label"]
        )

    def find_by_label(self, owner: str, label: str) -> StackScriptRef:
        """Find the StackScript published by ``owner`` under ``label``.

        The catalog is queried by label only; the owner is matched here since
        the API does not filter on it.

        Raises
        ------
        NotFoundError
            If no entry matches both label and owner
        """
        for script in self.api.list_stackscripts(label):
            if script["username"] == owner and script["label"] == label:
                return StackScriptRef(
                    script_id=script["id"],
                    owner=script["username"],
                    label=script["label"],
                )

        raise NotFoundError(
            f"StackScript not found: {owner}/{label}", stage="stackscript"
        )
