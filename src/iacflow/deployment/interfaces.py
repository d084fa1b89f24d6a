"""Execution back-end interface."""

from abc import ABC, abstractmethod

from iacflow.deployment.exceptions import ServiceNotDeployedError
from iacflow.deployment.models import (
    DeployerKind,
    DeployResult,
    DeployTask,
    ServiceDefinition,
    ValidationResult,
)


class Deployment(ABC):
    """
    Contract shared by the local and remote execution back-ends.

    deploy and destroy return a terminal result for synchronous back-ends
    and a pending result (id only) for asynchronous ones, which complete
    through the callback correlator.
    """

    @property
    @abstractmethod
    def deployer_kind(self) -> DeployerKind:
        """IaC tool wrapped by this back-end."""

    @property
    def is_async(self) -> bool:
        """Whether deploy/destroy complete out of band."""
        return False

    @abstractmethod
    async def deploy(self, task: DeployTask) -> DeployResult:
        """Provision the resources of a task."""

    async def destroy(self, task: DeployTask, stored_state: str | None) -> DeployResult:
        """
        Tear down resources created by a previous deploy.

        Raises:
            ServiceNotDeployedError: If no state document is supplied
        """
        if not stored_state or not stored_state.strip():
            raise ServiceNotDeployedError(task.task_id)
        return await self._destroy(task, stored_state)

    @abstractmethod
    async def _destroy(self, task: DeployTask, stored_state: str) -> DeployResult:
        """Back-end specific destroy, called with a non-blank state."""

    @abstractmethod
    async def validate(self, ocl: ServiceDefinition) -> ValidationResult:
        """Dry syntax/semantic check of the template scripts."""

    @abstractmethod
    async def get_deploy_plan_as_json(self, task: DeployTask) -> str:
        """Machine-readable plan without applying changes."""

    @abstractmethod
    def delete_task_workspace(self, task_id: str) -> None:
        """Release local resources scoped to the task."""

    def get_deployer_kind(self) -> DeployerKind:
        return self.deployer_kind

    async def close(self) -> None:
        """Release connections held by the back-end."""
        return None
