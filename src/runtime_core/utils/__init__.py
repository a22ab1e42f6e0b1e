"""Utility functions for the runtime core."""

from runtime_core.utils.id_generator import generate_prefixed_id, is_prefixed_id, to_base36

__all__ = [
    "generate_prefixed_id",
    "is_prefixed_id",
    "to_base36",
]
