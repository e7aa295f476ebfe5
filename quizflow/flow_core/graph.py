"""Node/edge export of a flow for visualizers, plus a Mermaid rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from .conditions import branch_label
from .ir import DefaultBranch, FlowDefinition, OutcomeKind
from .resolver import branch_target, has_branching


@dataclass(slots=True, frozen=True)
class GraphNode:
    id: str
    type: Literal["step", "outcome"]
    label: str
    is_initial: bool = False
    has_branching: bool = False
    kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "is_initial": self.is_initial,
            "has_branching": self.has_branching,
            "kind": self.kind,
        }


@dataclass(slots=True, frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str
    is_default: bool
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "is_default": self.is_default,
            "label": self.label,
        }


@dataclass(slots=True, frozen=True)
class FlowGraph:
    nodes: list[GraphNode]
    edges: list[GraphEdge]


def build_graph(flow: FlowDefinition) -> FlowGraph:
    """Step nodes in definition order, then outcome nodes.

    Empty targets produce no edge. A literal ``next`` yields a single unlabeled
    default edge; branch lists yield one labeled edge per branch.
    """
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    for step in flow.steps:
        nodes.append(
            GraphNode(
                id=step.id,
                type="step",
                label=step.question,
                is_initial=step.id == flow.initial_step,
                has_branching=has_branching(step.next),
                kind=step.kind.value,
            )
        )

        if isinstance(step.next, str):
            if step.next:
                edges.append(
                    GraphEdge(
                        id=f"{step.id}->{step.next}",
                        source=step.id,
                        target=step.next,
                        is_default=True,
                    )
                )
            continue

        for index, branch in enumerate(step.next):
            target = branch_target(branch)
            if not target:
                continue
            edges.append(
                GraphEdge(
                    id=f"{step.id}->{target}[{index}]",
                    source=step.id,
                    target=target,
                    is_default=isinstance(branch, DefaultBranch),
                    label=branch_label(branch),
                )
            )

    for outcome_id, outcome in flow.outcomes.items():
        nodes.append(
            GraphNode(
                id=outcome_id,
                type="outcome",
                label=outcome.reason or outcome.kind.value,
                kind=outcome.kind.value,
            )
        )

    return FlowGraph(nodes=nodes, edges=edges)


def _sanitize_id(raw: str) -> str:
    return "".join(ch if (ch.isalnum() or ch == "_") else "_" for ch in raw)


def _escape(label: str) -> str:
    # Mermaid labels are double-quoted; use the HTML entity for inner quotes
    return label.replace('"', "#quot;")


_OUTCOME_CLASSES = {
    OutcomeKind.ELIGIBLE: "eligible",
    OutcomeKind.INELIGIBLE: "ineligible",
    OutcomeKind.NEEDS_REVIEW: "review",
}


def render_mermaid(flow: FlowDefinition, title: str | None = None) -> str:
    """Render the flow as a Mermaid ``flowchart TD`` document."""
    graph = build_graph(flow)
    lines: list[str] = ["flowchart TD"]
    lines.append(f"  %% {title or f'{flow.name} v{flow.version}'}")

    for node in graph.nodes:
        nid = _sanitize_id(node.id)
        label = _escape(f"{node.label}<br/>({node.id})")
        if node.type == "outcome":
            lines.append(f'  {nid}(["{label}"])')
        elif node.has_branching:
            lines.append(f'  {nid}{{"{label}"}}')
        else:
            lines.append(f'  {nid}["{label}"]')

    for edge in graph.edges:
        src, dst = _sanitize_id(edge.source), _sanitize_id(edge.target)
        if edge.label and not edge.is_default:
            lines.append(f'  {src} -->|"{_escape(edge.label)}"| {dst}')
        elif edge.label:
            lines.append(f"  {src} -.->|default| {dst}")
        else:
            lines.append(f"  {src} --> {dst}")

    lines.append("  classDef eligible fill:#dcfce7,stroke:#16a34a")
    lines.append("  classDef ineligible fill:#fee2e2,stroke:#dc2626")
    lines.append("  classDef review fill:#fef9c3,stroke:#ca8a04")
    for outcome_id, outcome in flow.outcomes.items():
        lines.append(f"  class {_sanitize_id(outcome_id)} {_OUTCOME_CLASSES[outcome.kind]}")

    start = _sanitize_id(flow.initial_step)
    lines.append(f"  style {start} stroke-width:3px")
    return "\n".join(lines) + "\n"
