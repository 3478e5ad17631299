"""
Core configuration pipeline: templates, assembly, synchronization.
"""

from .assembler import assemble, tenant_server_key
from .sync import ConfigSynchronizer
from .templates import render_args, render_template

__all__ = [
    "assemble",
    "tenant_server_key",
    "ConfigSynchronizer",
    "render_args",
    "render_template",
]
