"""
Deployment orchestration.

Runs service templates through Terraform/OpenTofu, either locally in a
per-task workspace or on the remote terraform-boot service, and keeps the
result of every deploy and destroy.

Back-ends and the engine live in submodules:

    iacflow.deployment.local     child process back-end
    iacflow.deployment.remote    terraform-boot back-end
    iacflow.deployment.manager   DeployService and its factory
    iacflow.deployment.router    webhook endpoints
"""

from iacflow.deployment.callbacks import CallbackCorrelator
from iacflow.deployment.exceptions import (
    DeployerNotFoundError,
    DeploymentError,
    DeploymentErrorKind,
    OperationAlreadyRegisteredError,
    PluginNotFoundError,
    ScriptFormatInvalidError,
    ScriptResolutionError,
    ServiceNotDeployedError,
    StateParseError,
    TerraformBootRequestFailedError,
    TerraformExecutorError,
    VariableInvalidError,
)
from iacflow.deployment.interfaces import Deployment
from iacflow.deployment.models import (
    CallbackOutcome,
    Csp,
    DeployerKind,
    DeployerTaskStatus,
    DeployOperation,
    DeployRequest,
    DeployResource,
    DeployResourceKind,
    DeployResult,
    DeployTask,
    ServiceDefinition,
    ValidationResult,
)
from iacflow.deployment.state import StateExtractor

__all__ = [
    # Engine pieces
    "CallbackCorrelator",
    "Deployment",
    "StateExtractor",
    # Models
    "CallbackOutcome",
    "Csp",
    "DeployerKind",
    "DeployerTaskStatus",
    "DeployOperation",
    "DeployRequest",
    "DeployResource",
    "DeployResourceKind",
    "DeployResult",
    "DeployTask",
    "ServiceDefinition",
    "ValidationResult",
    # Exceptions
    "DeployerNotFoundError",
    "DeploymentError",
    "DeploymentErrorKind",
    "OperationAlreadyRegisteredError",
    "PluginNotFoundError",
    "ScriptFormatInvalidError",
    "ScriptResolutionError",
    "ServiceNotDeployedError",
    "StateParseError",
    "TerraformBootRequestFailedError",
    "TerraformExecutorError",
    "VariableInvalidError",
]
