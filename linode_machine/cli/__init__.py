"""CLI argument parsing and handling."""

from __future__ import annotations

from linode_machine.cli.parsing import (
    apply_cli_overrides,
    normalize_cli_value,
    parse_instance_id,
)

__all__ = [
    "apply_cli_overrides",
    "normalize_cli_value",
    "parse_instance_id",
]
