"""Domain errors raised by the workflow engine."""

from typing import Any, Dict


class WorkflowError(Exception):
    """
    Base class for workflow failures.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    error = "workflow_error"

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.error,
            "code": self.code,
            "message": self.message,
        }


class NotFoundError(WorkflowError):
    """Raised when a referenced bug does not exist."""

    error = "not_found"

    def __init__(self, bug_id: int, code: str = "BUG_NOT_FOUND"):
        self.bug_id = bug_id
        super().__init__(code, f"Bug #{bug_id} not found")


class ForbiddenError(WorkflowError):
    """Raised when the actor's role does not permit the operation."""

    error = "forbidden"
