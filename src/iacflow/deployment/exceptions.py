"""
Deployment engine exceptions.

Every failure raised by the engine carries a kind from one closed
enumeration, a human readable message and the diagnostic text captured
from the back-end (process output or HTTP error body).
"""

from enum import Enum
from typing import Any


class DeploymentErrorKind(str, Enum):
    """Closed set of failure kinds raised by the engine."""

    SUBMISSION_FAILED = "submission_failed"
    EXECUTION_FAILED = "execution_failed"
    SERVICE_NOT_DEPLOYED = "service_not_deployed"
    SCRIPT_RESOLUTION_FAILED = "script_resolution_failed"
    PLUGIN_NOT_FOUND = "plugin_not_found"
    DEPLOYER_NOT_FOUND = "deployer_not_found"
    VARIABLE_INVALID = "variable_invalid"
    STATE_PARSE_FAILED = "state_parse_failed"
    SCRIPT_FORMAT_INVALID = "script_format_invalid"
    OPERATION_ALREADY_REGISTERED = "operation_already_registered"


class DeploymentError(Exception):
    """
    Base deployment error with structured payload.

    Attributes:
        message: Human-readable error message
        kind: Machine-readable failure kind
        diagnostics: Captured back-end output lines
        context: Additional context data about the error
    """

    default_kind = DeploymentErrorKind.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        kind: DeploymentErrorKind | None = None,
        diagnostics: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.kind = kind or self.default_kind
        self.diagnostics = diagnostics or []
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "diagnostics": self.diagnostics,
            "context": self.context,
        }


class TerraformBootRequestFailedError(DeploymentError):
    """The request to the remote execution service could not be submitted."""

    default_kind = DeploymentErrorKind.SUBMISSION_FAILED

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        diagnostics: list[str] | None = None,
    ) -> None:
        context = {"status_code": status_code} if status_code is not None else None
        super().__init__(message, diagnostics=diagnostics, context=context)
        self.status_code = status_code


class TerraformExecutorError(DeploymentError):
    """The IaC binary exited with an error."""

    default_kind = DeploymentErrorKind.EXECUTION_FAILED


class ServiceNotDeployedError(DeploymentError):
    """Destroy was requested for a task without a stored state document."""

    default_kind = DeploymentErrorKind.SERVICE_NOT_DEPLOYED

    def __init__(self, task_id: str) -> None:
        super().__init__(
            f"Service not deployed, no state found for task {task_id}",
            context={"task_id": task_id},
        )


class ScriptResolutionError(DeploymentError):
    """No provider script is available for a cloud/region pair."""

    default_kind = DeploymentErrorKind.SCRIPT_RESOLUTION_FAILED


class PluginNotFoundError(ScriptResolutionError):
    """No plugin is registered for the cloud provider."""

    default_kind = DeploymentErrorKind.PLUGIN_NOT_FOUND

    def __init__(self, csp: str) -> None:
        super().__init__(f"Can't find suitable plugin for the Csp {csp}", context={"csp": csp})


class DeployerNotFoundError(DeploymentError):
    """No back-end is registered for the deployer kind."""

    default_kind = DeploymentErrorKind.DEPLOYER_NOT_FOUND

    def __init__(self, kind: str) -> None:
        super().__init__(f"No deployer registered for kind {kind}", context={"kind": kind})


class VariableInvalidError(DeploymentError):
    """A mandatory deploy variable has no value."""

    default_kind = DeploymentErrorKind.VARIABLE_INVALID


class StateParseError(DeploymentError):
    """The state document could not be parsed."""

    default_kind = DeploymentErrorKind.STATE_PARSE_FAILED


class ScriptFormatInvalidError(DeploymentError):
    """Deployer script failed validation at template registration."""

    default_kind = DeploymentErrorKind.SCRIPT_FORMAT_INVALID

    def __init__(self, details: list[str], kind_name: str = "terraform") -> None:
        super().__init__(
            f"{kind_name} script format invalid: {'; '.join(details)}",
            diagnostics=details,
        )


class OperationAlreadyRegisteredError(DeploymentError):
    """The operation is already pending or succeeded for the task."""

    default_kind = DeploymentErrorKind.OPERATION_ALREADY_REGISTERED

    def __init__(self, task_id: str, operation: str) -> None:
        super().__init__(
            f"{operation} already registered for task {task_id}",
            context={"task_id": task_id, "operation": operation},
        )
