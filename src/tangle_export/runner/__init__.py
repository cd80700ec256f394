"""
CLI runner module.

Provides commands:
- export: Walk the metadata index and append JSON rows to the output file
- stats: Show storage sizes of the tangle replica
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
