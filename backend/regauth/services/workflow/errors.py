"""
Workflow Errors

Every guard violation aborts the operation with one of these.
The case is left unchanged; nothing is retried internally.
"""


class WorkflowError(Exception):
    """Base class for workflow failures. `code` is stable for API callers."""
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, case_key: str = None):
        super().__init__(message)
        self.message = message
        self.case_key = case_key

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "case_key": self.case_key}


class Unauthorized(WorkflowError):
    """Caller lacks the required role."""
    code = "UNAUTHORIZED"


class CaseNotFound(WorkflowError):
    code = "CASE_NOT_FOUND"


class DuplicateCase(WorkflowError):
    """Submission for a subject that already has a live case."""
    code = "DUPLICATE_CASE"


class InvalidPhase(WorkflowError):
    """Operation not valid for the current phase."""
    code = "INVALID_PHASE"


class WindowExpired(WorkflowError):
    """A time-gated precondition failed."""
    code = "WINDOW_EXPIRED"


class SuspensionConflict(WorkflowError):
    """Second suspension requested, or resume attempted after the cutoff."""
    code = "SUSPENSION_CONFLICT"


class MissingPrerequisite(WorkflowError):
    """Required attachment absent, or a flagged issue bars approval."""
    code = "MISSING_PREREQUISITE"


class AlreadyDecided(WorkflowError):
    """Mutation attempted on a terminal case."""
    code = "ALREADY_DECIDED"


class StaleCase(WorkflowError):
    """Another operation committed to the case after it was read."""
    code = "STALE_CASE"
