"""Logging helpers for linode-machine."""

from linode_machine.logging.formatters import StreamFormatter, StreamRoutingFilter

__all__ = ["StreamFormatter", "StreamRoutingFilter"]
