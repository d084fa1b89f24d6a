"""Local (child process) execution back-end."""

from iacflow.deployment.local.deployment import TerraformLocalDeployment
from iacflow.deployment.local.executor import CommandResult, TerraformExecutor

__all__ = ["CommandResult", "TerraformExecutor", "TerraformLocalDeployment"]
