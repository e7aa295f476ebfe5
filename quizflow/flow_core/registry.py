"""Versioned, read-only lookup of validated flow definitions."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from pydantic import ValidationError

from quizflow.settings import get_settings

from .errors import FlowRegistryError
from .ir import FlowDefinition
from .validator import FlowValidator

logger = logging.getLogger(__name__)

_VERSION_PART = re.compile(r"\d+")


def _version_key(version: str) -> tuple[int, ...]:
    """Sort key for dotted versions: "1.10.0" sorts after "1.9.2"."""
    parts = []
    for part in version.split("."):
        match = _VERSION_PART.match(part)
        parts.append(int(match.group()) if match else -1)
    return tuple(parts)


def default_definitions_dir() -> Path:
    """Return the flow definitions bundled with the package."""
    return Path(__file__).resolve().parent / "definitions"


def load_flow_file(path: str | Path) -> FlowDefinition:
    """Parse a single JSON flow definition file (no structural validation)."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Cannot read flow definition {p}: {exc}"
        raise FlowRegistryError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Flow definition {p} must be a JSON object"
        raise FlowRegistryError(msg)

    try:
        return FlowDefinition.model_validate(data)
    except ValidationError as exc:
        msg = f"Flow definition {p} does not match the flow schema:\n{exc}"
        raise FlowRegistryError(msg) from exc


class FlowRegistry:
    """Registry of all flow versions, keyed by flow id.

    Every definition is validated on construction; the registry is read-only
    afterwards. Versions are ordered newest first and the newest one is the
    current version returned by :meth:`get_flow`.
    """

    def __init__(self, flows: Iterable[FlowDefinition], *, strict: bool = False) -> None:
        validator = FlowValidator(strict=strict)
        versions: dict[str, list[FlowDefinition]] = {}

        for flow in flows:
            validator.validate(flow)
            existing = versions.setdefault(flow.id, [])
            if any(f.version == flow.version for f in existing):
                msg = f'Flow "{flow.id}" version {flow.version} registered twice'
                raise FlowRegistryError(msg)
            existing.append(flow)

        self._versions: MappingProxyType[str, tuple[FlowDefinition, ...]] = MappingProxyType(
            {
                flow_id: tuple(sorted(items, key=lambda f: _version_key(f.version), reverse=True))
                for flow_id, items in versions.items()
            }
        )
        logger.info(
            "Flow registry built: %s",
            ", ".join(f"{fid}({len(v)})" for fid, v in self._versions.items()) or "empty",
        )

    @classmethod
    def from_directory(cls, path: str | Path, *, strict: bool = False) -> FlowRegistry:
        """Load every ``*.json`` flow definition below ``path``."""
        root = Path(path)
        if not root.is_dir():
            msg = f"Flow definitions directory not found: {root}"
            raise FlowRegistryError(msg)
        files = sorted(root.rglob("*.json"))
        logger.debug("Loading %d flow definition files from %s", len(files), root)
        return cls((load_flow_file(p) for p in files), strict=strict)

    def get_flow(self, flow_id: str) -> FlowDefinition | None:
        """Get a flow by its ID (current version)."""
        versions = self._versions.get(flow_id)
        return versions[0] if versions else None

    def get_flow_versions(self, flow_id: str) -> list[FlowDefinition]:
        """Get all versions of a flow, newest first."""
        return list(self._versions.get(flow_id, ()))

    def get_flow_by_version(self, flow_id: str, version: str) -> FlowDefinition | None:
        for flow in self._versions.get(flow_id, ()):
            if flow.version == version:
                return flow
        return None

    def all_flows(self) -> list[FlowDefinition]:
        """Get all registered flows (current versions)."""
        return [versions[0] for versions in self._versions.values()]

    def flow_exists(self, flow_id: str) -> bool:
        return flow_id in self._versions

    def __len__(self) -> int:
        return len(self._versions)


@lru_cache(maxsize=1)
def get_registry() -> FlowRegistry:
    """Return the process-wide registry built from the configured definitions."""
    settings = get_settings()
    path = settings.flow_definitions_dir or default_definitions_dir()
    return FlowRegistry.from_directory(path, strict=settings.strict_flow_validation)
