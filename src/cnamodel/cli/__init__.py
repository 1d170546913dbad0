"""
CLI commands for the CNA modeling tool.
"""

from cnamodel.cli.export import export_command, validate_command

__all__ = [
    "export_command",
    "validate_command",
]
