"""Component catalog for add-step and flow validation.

The catalog answers one question: given a component id, which configuration
fields does it require? Edits only use it to decide whether a node is
well-formed.

Catalog sources:
- MemoryCatalog: seeded programmatically (tests, embedding hosts)
- ManifestCatalog: component manifests on disk (JSON or YAML)

Manifest shape:
    id: ai.greentic.echo
    config_schema:
      required: [message]

Usage:
    from flowgraph.config.catalog import ManifestCatalog, load_catalog

    catalog = ManifestCatalog.load_from_paths(["components/echo/component.manifest.json"])
    meta = catalog.resolve("ai.greentic.echo")
    if meta:
        print(meta.required_fields)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentMetadata:
    """Minimal metadata needed to validate a component node.

    Attributes:
        id: Component identifier (e.g., "qa.process").
        required_fields: Payload keys the component requires. Dotted names
            address nested mappings (e.g., "http.url").
    """
    id: str
    required_fields: Tuple[str, ...] = ()


class ComponentCatalog(ABC):
    """Lookup from component id to its metadata."""

    @abstractmethod
    def resolve(self, component_id: str) -> Optional[ComponentMetadata]:
        """Return metadata for a component, or None if unknown."""

    def __contains__(self, component_id: str) -> bool:
        return self.resolve(component_id) is not None


class MemoryCatalog(ComponentCatalog):
    """Catalog seeded programmatically."""

    def __init__(self, entries: Optional[Iterable[ComponentMetadata]] = None):
        self._entries: Dict[str, ComponentMetadata] = {}
        for meta in entries or ():
            self.insert(meta)

    def insert(self, meta: ComponentMetadata) -> None:
        self._entries[meta.id] = meta

    def resolve(self, component_id: str) -> Optional[ComponentMetadata]:
        return self._entries.get(component_id)

    def ids(self) -> List[str]:
        return sorted(self._entries)


class ManifestCatalog(MemoryCatalog):
    """Catalog backed by component manifest files on disk."""

    @classmethod
    def load_from_paths(cls, paths: Iterable[Union[str, Path]]) -> "ManifestCatalog":
        """Load manifests, skipping unreadable ones.

        A directory path loads every *.manifest.json / *.manifest.yaml inside it.
        """
        catalog = cls()
        for path in _expand_paths(paths):
            try:
                meta = _read_manifest(path)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("Failed to load component manifest %s: %s", path, e)
                continue
            catalog.insert(meta)
            logger.debug("Loaded component %s from %s", meta.id, path)

        logger.info("Component catalog loaded with %d components", len(catalog.ids()))
        return catalog


def _expand_paths(paths: Iterable[Union[str, Path]]) -> List[Path]:
    expanded: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            expanded.extend(sorted(path.glob("*.manifest.json")))
            expanded.extend(sorted(path.glob("*.manifest.yaml")))
        else:
            expanded.append(path)
    return expanded


def _read_manifest(path: Path) -> ComponentMetadata:
    """Parse one manifest file.

    Raises:
        ValueError: If the manifest is not a mapping or lacks an id.
    """
    text = path.read_text(encoding="utf-8")
    data: Any
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)

    if not isinstance(data, dict) or not isinstance(data.get("id"), str):
        raise ValueError("manifest must be a mapping with a string 'id'")

    schema = data.get("config_schema") or {}
    required = schema.get("required") or [] if isinstance(schema, dict) else []
    return ComponentMetadata(
        id=data["id"],
        required_fields=tuple(str(f) for f in required),
    )


def load_catalog(paths: Optional[Iterable[Union[str, Path]]] = None) -> ComponentCatalog:
    """Build the catalog from explicit paths or the configured catalog_paths."""
    if paths is None:
        from flowgraph.config.edit_config import get_edit_settings

        paths = get_edit_settings().catalog_paths
    return ManifestCatalog.load_from_paths(paths)
