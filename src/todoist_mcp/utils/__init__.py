"""Shared helpers for environment parsing and logging."""

from .environment import env_flag, env_float, env_int, env_list
from .logging import mask_sensitive, setup_logging

__all__ = [
    "env_flag",
    "env_float",
    "env_int",
    "env_list",
    "mask_sensitive",
    "setup_logging",
]
