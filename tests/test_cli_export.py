"""Tests for the export and validate CLI commands."""

from __future__ import annotations

import json

import pytest
import yaml

import cnamodel.cli.main as cli_main
from cnamodel.cli.export import export_command, validate_command
from cnamodel.cli.main import build_parser, main
from cnamodel.core.errors import ExitCode

VALID_MODEL = """\
name: Tiny
infrastructure:
  - {id: vm, name: VM}
components:
  - id: app
    name: App
    hosted_by: vm
    endpoints:
      - {id: app-api, type: REST, path: /api, port: 8080}
"""

SELF_LINK_MODEL = """\
name: Broken
components:
  - id: app
    name: App
    endpoints:
      - {id: app-api, type: REST, path: /api, port: 8080}
links:
  - {id: l1, source: app, target: app-api}
"""

UNICODE_MODEL = """\
name: Bäckerei Müller
components:
  - {id: ofen, name: Öfen}
"""

MISSING_PORT_MODEL = """\
name: Broken
components:
  - id: app
    name: App
    endpoints:
      - {id: app-api, type: REST, path: /api}
"""


@pytest.fixture
def model_file(tmp_path):
    def write(content: str):
        path = tmp_path / "model.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)

    return write


class TestExportCommand:
    def test_demo_yaml_to_stdout(self, capsys):
        result = export_command(demo=True, output_format="yaml")

        assert result == ExitCode.SUCCESS
        document = yaml.safe_load(capsys.readouterr().out)
        assert document["metadata"]["template_name"] == "Web Shop"
        assert "api_gateway" in document["topology_template"]["node_templates"]

    def test_demo_json_to_stdout(self, capsys):
        result = export_command(demo=True, output_format="json")

        assert result == ExitCode.SUCCESS
        document = json.loads(capsys.readouterr().out)
        assert document["tosca_definitions_version"] == "tosca_simple_yaml_1_3"

    def test_model_file(self, capsys, model_file):
        result = export_command(model_file=model_file(VALID_MODEL), output_format="yaml")

        assert result == ExitCode.SUCCESS
        document = yaml.safe_load(capsys.readouterr().out)
        assert document["topology_template"]["node_templates"]["app"]["requirements"] == [
            {"host": {"node": "vm"}}
        ]

    def test_output_file(self, tmp_path, capsys):
        output = tmp_path / "shop.tosca"
        result = export_command(demo=True, output_format="yaml", output_file=str(output))

        assert result == ExitCode.SUCCESS
        assert output.exists()
        assert yaml.safe_load(output.read_text())["metadata"]["template_name"] == "Web Shop"
        assert "Wrote yaml output" in capsys.readouterr().out

    def test_output_file_is_utf8(self, tmp_path, model_file):
        output = tmp_path / "bakery.tosca"
        result = export_command(
            model_file=model_file(UNICODE_MODEL), output_format="yaml", output_file=str(output)
        )

        assert result == ExitCode.SUCCESS
        document = yaml.safe_load(output.read_bytes().decode("utf-8"))
        assert document["metadata"]["template_name"] == "Bäckerei Müller"
        assert "öfen" in document["topology_template"]["node_templates"]

    def test_no_model(self, capsys):
        result = export_command()

        assert result == ExitCode.CONFIG_ERROR
        assert "Model file is required" in capsys.readouterr().out

    def test_missing_model_file(self, tmp_path):
        assert export_command(model_file=str(tmp_path / "nope.yaml")) == ExitCode.CONFIG_ERROR

    def test_unknown_format(self):
        assert export_command(demo=True, output_format="xml") == ExitCode.CONFIG_ERROR

    def test_malformed_model(self, model_file):
        assert export_command(model_file=model_file("name: [oops\n")) == ExitCode.CONFIG_ERROR

    def test_invalid_graph(self, model_file):
        result = export_command(model_file=model_file(SELF_LINK_MODEL))
        assert result == ExitCode.VALIDATION_ERROR

    def test_missing_endpoint_property(self, tmp_path, model_file):
        output = tmp_path / "out.tosca"
        result = export_command(
            model_file=model_file(MISSING_PORT_MODEL), output_file=str(output)
        )

        assert result == ExitCode.VALIDATION_ERROR
        assert not output.exists()


class TestValidateCommand:
    def test_demo(self, capsys):
        assert validate_command(demo=True) == ExitCode.SUCCESS
        out = capsys.readouterr().out
        assert "exports cleanly" in out
        assert "node templates" in out

    def test_invalid(self, model_file):
        assert validate_command(model_file=model_file(MISSING_PORT_MODEL)) == ExitCode.VALIDATION_ERROR

    def test_no_model(self):
        assert validate_command() == ExitCode.CONFIG_ERROR


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_logging_setup(self, monkeypatch):
        monkeypatch.setattr(cli_main, "configure_logging", lambda level: None)

    def test_parser(self):
        args = build_parser().parse_args(
            ["export", "shop.yaml", "--format", "json", "-o", "shop.json"]
        )
        assert args.command == "export"
        assert args.model_file == "shop.yaml"
        assert args.output_format == "json"
        assert args.output_file == "shop.json"
        assert args.demo is False

    def test_export_demo(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["export", "--demo"])

        assert exc_info.value.code == 0
        assert "tosca_definitions_version" in capsys.readouterr().out

    def test_validate_missing_model(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["validate"])
        assert exc_info.value.code == ExitCode.CONFIG_ERROR

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
