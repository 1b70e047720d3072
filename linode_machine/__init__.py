"""Linode compute instance driver for host orchestration tools."""

__version__ = "0.5.0"
