from .errors import (
    DanglingTarget,
    DuplicateStepId,
    FlowRegistryError,
    GraphError,
    MisplacedDefault,
    MissingInitialStep,
    ResolutionError,
    StructuralWarnings,
)
from .ir import (
    AndCondition,
    AnswerCondition,
    Branch,
    ComparisonCondition,
    Condition,
    DefaultBranch,
    EmptinessCondition,
    EqualityCondition,
    FlowDefinition,
    MatchesCondition,
    MembershipCondition,
    NextLogic,
    NotCondition,
    OrCondition,
    Outcome,
    OutcomeKind,
    Step,
    StepKind,
    StepOption,
    ValidationRules,
    WhenBranch,
)
from .registry import FlowRegistry, get_registry
from .resolver import resolve_next
from .session import FlowSession, SubmitResult
from .state import Progress, SessionState, SessionStatus
from .validation import ValidationResult, validate_answer
from .validator import FlowValidator, validate_flow

__all__ = [
    "AndCondition",
    "AnswerCondition",
    "Branch",
    "ComparisonCondition",
    "Condition",
    "DanglingTarget",
    "DefaultBranch",
    "DuplicateStepId",
    "EmptinessCondition",
    "EqualityCondition",
    "FlowDefinition",
    "FlowRegistry",
    "FlowRegistryError",
    "FlowSession",
    "FlowValidator",
    "GraphError",
    "MatchesCondition",
    "MembershipCondition",
    "MisplacedDefault",
    "MissingInitialStep",
    "NextLogic",
    "NotCondition",
    "OrCondition",
    "Outcome",
    "OutcomeKind",
    "Progress",
    "ResolutionError",
    "SessionState",
    "SessionStatus",
    "Step",
    "StepKind",
    "StepOption",
    "StructuralWarnings",
    "SubmitResult",
    "ValidationResult",
    "ValidationRules",
    "WhenBranch",
    "get_registry",
    "resolve_next",
    "validate_answer",
    "validate_flow",
]
