"""
CLI commands for TOSCA export.

Commands:
    cnamodel export <model>                  - Export as TOSCA YAML
    cnamodel export <model> --format json    - Export as JSON
    cnamodel export <model> -o shop.tosca    - Write to file
    cnamodel export --demo                   - Demo with sample system
    cnamodel validate <model>                - Check that a model exports cleanly
"""

from __future__ import annotations

import argparse

from cnamodel.cli.ux import console, error, print_key_value, success
from cnamodel.config import get_settings
from cnamodel.core.errors import ExitCode, main_with_error_handling
from cnamodel.entities.demo import create_demo_system
from cnamodel.entities.loader import load_system
from cnamodel.entities.models import System
from cnamodel.tosca.assembler import export_system
from cnamodel.tosca.serializers import SERIALIZERS


def _resolve_system(model_file: str | None, demo: bool) -> System | None:
    if demo:
        return create_demo_system()
    if model_file is None:
        error("Model file is required (or use --demo)")
        return None
    try:
        return load_system(model_file)
    except FileNotFoundError as e:
        error(str(e))
        return None


@main_with_error_handling()
def export_command(
    model_file: str | None = None,
    output_format: str | None = None,
    output_file: str | None = None,
    demo: bool = False,
) -> int:
    """
    Export a system model as a TOSCA service template.

    Args:
        model_file: Path to the system model YAML
        output_format: Output format (yaml, json); defaults to settings
        output_file: Optional file path for output
        demo: If True, export the demo system

    Returns:
        Exit code (0 on success)
    """
    settings = get_settings()
    output_format = output_format or settings.output_format

    serializer = SERIALIZERS.get(output_format)
    if serializer is None:
        error(f"Unknown format: {output_format}")
        return ExitCode.CONFIG_ERROR

    system = _resolve_system(model_file, demo)
    if system is None:
        return ExitCode.CONFIG_ERROR

    output = serializer(export_system(system, settings=settings))

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
        success(f"Wrote {output_format} output to {output_file}")
    else:
        # print() not console.print(): output is machine-readable
        print(output, end="" if output.endswith("\n") else "\n")

    return ExitCode.SUCCESS


@main_with_error_handling()
def validate_command(model_file: str | None = None, demo: bool = False) -> int:
    """Load a model and run the export without writing anything."""
    system = _resolve_system(model_file, demo)
    if system is None:
        return ExitCode.CONFIG_ERROR

    service_template = export_system(system, settings=get_settings())
    topology = service_template.topology_template
    success(f"{system.name} exports cleanly")
    print_key_value(
        {
            "node templates": str(len(topology.node_templates)),
            "relationship templates": str(len(topology.relationship_templates)),
        }
    )
    console.print()
    return ExitCode.SUCCESS


def register_export_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register export and validate subcommand parsers."""
    export_parser = subparsers.add_parser(
        "export",
        help="Export a system model as a TOSCA service template",
    )
    export_parser.add_argument(
        "model_file",
        nargs="?",
        help="Path to system model YAML",
    )
    export_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=sorted(SERIALIZERS),
        default=None,
        help="Output format (default: yaml, or CNAMODEL_OUTPUT_FORMAT)",
    )
    export_parser.add_argument(
        "--output",
        "-o",
        dest="output_file",
        help="Write output to file instead of stdout",
    )
    export_parser.add_argument(
        "--demo",
        action="store_true",
        help="Use the demo system for sample output",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check that a system model exports without errors",
    )
    validate_parser.add_argument(
        "model_file",
        nargs="?",
        help="Path to system model YAML",
    )
    validate_parser.add_argument(
        "--demo",
        action="store_true",
        help="Validate the demo system",
    )


def handle_export_command(args: argparse.Namespace) -> int:
    """Handle export command from CLI args."""
    return export_command(
        model_file=getattr(args, "model_file", None),
        output_format=getattr(args, "output_format", None),
        output_file=getattr(args, "output_file", None),
        demo=getattr(args, "demo", False),
    )


def handle_validate_command(args: argparse.Namespace) -> int:
    """Handle validate command from CLI args."""
    return validate_command(
        model_file=getattr(args, "model_file", None),
        demo=getattr(args, "demo", False),
    )
