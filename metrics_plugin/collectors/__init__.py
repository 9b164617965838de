"""
Samplers producing the data sources of each payload.
"""

from .base import Sampler, collect_all
from .command import CommandSampler
from .system import SystemSampler

__all__ = [
    "Sampler",
    "collect_all",
    "CommandSampler",
    "SystemSampler",
]
