"""Utility modules for the settlement kernel."""

from settlement_kernel.utils.identifiers import parse_uuid

__all__ = [
    "parse_uuid",
]
