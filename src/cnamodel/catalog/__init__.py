"""
Type catalog for TOSCA export.

Read-only registry of the node and relationship types of the CNA modeling
TOSCA profile. The exporter asks it for property defaults and whether a
type is declared; nothing here is ever mutated after loading.
"""

from __future__ import annotations

import copy
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
import yaml

from cnamodel.core.errors import ModelLoadError

logger = structlog.get_logger()

DEFAULT_PROFILE = Path(__file__).parent / "cna_profile.yaml"


class TypeCatalog:
    """
    Node and relationship type definitions loaded from a TOSCA profile.

    Usage:
        catalog = TypeCatalog()
        catalog.default_properties("cna.qualityModel.entities.Compute.Infrastructure")
        # {"managed": False, "availability_zone": "default-zone", "region": "default-region"}
    """

    def __init__(self, profile_path: Path | None = None):
        self.profile_path = Path(profile_path) if profile_path else DEFAULT_PROFILE

        try:
            with open(self.profile_path, encoding="utf-8") as f:
                profile = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ModelLoadError(
                f"Cannot load type catalog from {self.profile_path}: {e}"
            ) from e

        if not isinstance(profile, dict):
            raise ModelLoadError(f"Expected YAML object in {self.profile_path}")

        self._node_types: dict[str, dict[str, Any]] = profile.get("node_types") or {}
        self._relationship_types: dict[str, dict[str, Any]] = (
            profile.get("relationship_types") or {}
        )
        logger.debug(
            "type_catalog_loaded",
            path=str(self.profile_path),
            node_types=len(self._node_types),
            relationship_types=len(self._relationship_types),
        )

    def has_node_type(self, type_name: str) -> bool:
        return type_name in self._node_types

    def has_relationship_type(self, type_name: str) -> bool:
        return type_name in self._relationship_types

    def default_properties(self, type_name: str) -> dict[str, Any]:
        """
        Declared property defaults of a node or relationship type.

        Only properties with an explicit default are included, in the
        order the profile declares them.
        """
        definition = self._node_types.get(type_name) or self._relationship_types.get(
            type_name, {}
        )
        defaults: dict[str, Any] = {}
        for name, prop in (definition.get("properties") or {}).items():
            if isinstance(prop, dict) and "default" in prop:
                defaults[name] = copy.deepcopy(prop["default"])
        return defaults

    def with_defaults(self, type_name: str, properties: dict[str, Any]) -> dict[str, Any]:
        """Overlay an entity's own properties on the type's defaults."""
        merged = self.default_properties(type_name)
        merged.update(properties)
        return merged


@lru_cache
def get_catalog() -> TypeCatalog:
    """Get the cached catalog for the bundled profile."""
    return TypeCatalog()


__all__ = [
    "DEFAULT_PROFILE",
    "TypeCatalog",
    "get_catalog",
]
