"""Exception hierarchy for flow definitions and flow execution."""

from __future__ import annotations


class GraphError(Exception):
    """Raised when a flow definition is structurally inconsistent.

    Graph errors are a registration-time gate: a flow that raises one must
    never be handed to a session.
    """

    def __init__(self, flow_id: str, message: str) -> None:
        super().__init__(f'Flow "{flow_id}": {message}')
        self.flow_id = flow_id
        self.detail = message


class MissingInitialStep(GraphError):
    """Raised when ``initial_step`` does not name a step of the flow."""

    def __init__(self, flow_id: str, initial_step: str) -> None:
        super().__init__(flow_id, f'Initial step "{initial_step}" not found in steps')
        self.initial_step = initial_step


class DuplicateStepId(GraphError):
    """Raised when two steps share the same id."""

    def __init__(self, flow_id: str, step_id: str) -> None:
        super().__init__(flow_id, f'Duplicate step ID "{step_id}"')
        self.step_id = step_id


class DanglingTarget(GraphError):
    """Raised when a step points at an id that is neither a step nor an outcome."""

    def __init__(self, flow_id: str, step_id: str, target: str, *, outcome: bool) -> None:
        kind = "outcome" if outcome else "step"
        super().__init__(flow_id, f'Step "{step_id}" references unknown {kind} "{target}"')
        self.step_id = step_id
        self.target = target


class MisplacedDefault(GraphError):
    """Raised when a ``default`` branch is not the last branch of a step."""

    def __init__(self, flow_id: str, step_id: str) -> None:
        super().__init__(
            flow_id,
            f"Step \"{step_id}\" has 'default' branch not at the end. Default must be last.",
        )
        self.step_id = step_id


class StructuralWarnings(GraphError):
    """Raised by a strict validator when non-fatal findings were collected."""

    def __init__(self, flow_id: str, warnings: list[str]) -> None:
        super().__init__(flow_id, "Strict validation failed:\n" + "\n".join(warnings))
        self.warnings = list(warnings)


class ResolutionError(Exception):
    """Raised when a branch list is exhausted without a match.

    Only reachable for flows whose branch lists omit a ``default`` entry and
    whose conditions are not exhaustive. Treat as an authoring defect.
    """

    def __init__(self, step_id: str | None = None) -> None:
        message = "No matching branch found and no default specified"
        if step_id:
            message = f'{message} (step "{step_id}")'
        super().__init__(message)
        self.step_id = step_id


class FlowRegistryError(Exception):
    """Raised when the flow registry cannot be built."""
