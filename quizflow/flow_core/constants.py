"""Constants for the flow core system.

Identifiers, default messages and limits shared by the validator, the
resolver and the session state machine.
"""

# Identifier space
OUTCOME_PREFIX = "outcome:"
NO_NAVIGATION = ""

# Answer validation messages
REQUIRED_MESSAGE = "This field is required"
REQUIRED_SELECTION_MESSAGE = "Please select at least one option"
MIN_VALUE_MESSAGE = "Value must be at least {min}"
MAX_VALUE_MESSAGE = "Value must be at most {max}"
MIN_LENGTH_MESSAGE = "Must be at least {min_length} characters"
MAX_LENGTH_MESSAGE = "Must be at most {max_length} characters"
PATTERN_MESSAGE = "Invalid format"
FALLBACK_VALIDATION_MESSAGE = "Invalid input"

# Condition labels
MAX_INLINE_COMBINATOR_PARTS = 2

# Progress
MIN_PROGRESS_PERCENTAGE = 0
MAX_PROGRESS_PERCENTAGE = 100
