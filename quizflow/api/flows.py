from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from quizflow.flow_core.graph import build_graph, render_mermaid
from quizflow.flow_core.ir import FlowDefinition
from quizflow.flow_core.registry import FlowRegistry, get_registry

router = APIRouter(prefix="/flows", tags=["flows"])


def get_flow_registry() -> FlowRegistry:
    return get_registry()


class FlowSummary(BaseModel):
    id: str
    name: str
    version: str
    description: str | None = None
    step_count: int
    versions: list[str]


class FlowVersionInfo(BaseModel):
    version: str
    name: str
    description: str | None = None
    is_current: bool


class FlowGraphResponse(BaseModel):
    flow_id: str
    version: str
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]
    mermaid: str


def _require_flow(
    registry: FlowRegistry, flow_id: str, version: str | None = None
) -> FlowDefinition:
    flow = registry.get_flow_by_version(flow_id, version) if version else registry.get_flow(flow_id)
    if flow is None:
        label = f"{flow_id} v{version}" if version else flow_id
        raise HTTPException(status_code=404, detail=f"Flow not found: {label}")
    return flow


@router.get("", response_model=list[FlowSummary])
async def list_flows(registry: FlowRegistry = Depends(get_flow_registry)) -> list[FlowSummary]:
    """List every registered flow at its current version."""
    return [
        FlowSummary(
            id=flow.id,
            name=flow.name,
            version=flow.version,
            description=flow.description,
            step_count=len(flow.steps),
            versions=[f.version for f in registry.get_flow_versions(flow.id)],
        )
        for flow in registry.all_flows()
    ]


@router.get("/{flow_id}", response_model=FlowDefinition)
async def get_flow(
    flow_id: str, registry: FlowRegistry = Depends(get_flow_registry)
) -> FlowDefinition:
    return _require_flow(registry, flow_id)


@router.get("/{flow_id}/versions", response_model=list[FlowVersionInfo])
async def list_flow_versions(
    flow_id: str, registry: FlowRegistry = Depends(get_flow_registry)
) -> list[FlowVersionInfo]:
    versions = registry.get_flow_versions(flow_id)
    if not versions:
        raise HTTPException(status_code=404, detail=f"Flow not found: {flow_id}")
    return [
        FlowVersionInfo(
            version=f.version,
            name=f.name,
            description=f.description,
            is_current=index == 0,
        )
        for index, f in enumerate(versions)
    ]


@router.get("/{flow_id}/versions/{version}", response_model=FlowDefinition)
async def get_flow_version(
    flow_id: str, version: str, registry: FlowRegistry = Depends(get_flow_registry)
) -> FlowDefinition:
    return _require_flow(registry, flow_id, version)


@router.get("/{flow_id}/graph", response_model=FlowGraphResponse)
async def get_flow_graph(
    flow_id: str,
    version: str | None = None,
    registry: FlowRegistry = Depends(get_flow_registry),
) -> FlowGraphResponse:
    """Nodes and labeled edges for visualizers, plus Mermaid source."""
    flow = _require_flow(registry, flow_id, version)
    graph = build_graph(flow)
    return FlowGraphResponse(
        flow_id=flow.id,
        version=flow.version,
        nodes=[n.to_dict() for n in graph.nodes],
        edges=[e.to_dict() for e in graph.edges],
        mermaid=render_mermaid(flow),
    )
