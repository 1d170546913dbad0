"""
Service template serializers: YAML and JSON output formats.

Pure functions that convert a ServiceTemplate to string output.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from cnamodel.tosca.models import ServiceTemplate


class _ToscaDumper(yaml.SafeDumper):
    """SafeDumper rendering None as an empty scalar, without anchors."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _represent_none(dumper: yaml.SafeDumper, _data: Any) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:null", "")


_ToscaDumper.add_representer(type(None), _represent_none)


def serialize_yaml(service_template: ServiceTemplate) -> str:
    """Serialize as a TOSCA YAML document, keys in template order."""
    return yaml.dump(
        service_template.to_dict(),
        Dumper=_ToscaDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def serialize_json(service_template: ServiceTemplate) -> str:
    return json.dumps(service_template.to_dict(), indent=2)


SERIALIZERS = {
    "yaml": serialize_yaml,
    "json": serialize_json,
}
