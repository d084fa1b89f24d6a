"""
Remote execution back-end (terraform-boot).

Deploy and destroy are submitted with a webhook URL that embeds the task
id; the returned result only carries the id and the operation completes
through the callback correlator. Validate and plan are synchronous calls.
"""

import socket

import structlog

from iacflow.deployment.exceptions import TerraformBootRequestFailedError
from iacflow.deployment.interfaces import Deployment
from iacflow.deployment.models import (
    DeployerKind,
    DeployOperation,
    DeployResult,
    DeployTask,
    ServiceDefinition,
    ValidationResult,
    WebhookAuthType,
    WebhookConfig,
)
from iacflow.deployment.remote.client import TerraformBootClient
from iacflow.deployment.remote.models import (
    TerraformAsyncDeployFromScriptsRequest,
    TerraformAsyncDestroyFromScriptsRequest,
    TerraformDeployWithScriptsRequest,
    TerraformPlanWithScriptsRequest,
)
from iacflow.deployment.scripts import ScriptResolver
from iacflow.deployment.variables import DeployEnvironments
from iacflow.settings import RemoteExecutorSettings

logger = structlog.get_logger(__name__)


class TerraformBootDeployment(Deployment):
    """Deployment through the remote terraform-boot service."""

    def __init__(
        self,
        client: TerraformBootClient,
        script_resolver: ScriptResolver,
        environments: DeployEnvironments,
        config: RemoteExecutorSettings | None = None,
        port: int = 8080,
        kind: DeployerKind = DeployerKind.TERRAFORM,
    ) -> None:
        self.client = client
        self.script_resolver = script_resolver
        self.environments = environments
        self.config = config or RemoteExecutorSettings()
        self.port = port
        self.kind = kind

    @property
    def deployer_kind(self) -> DeployerKind:
        return self.kind

    @property
    def is_async(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def get_client_request_base_url(self) -> str:
        """
        Base URL the remote service calls back to.

        Raises:
            TerraformBootRequestFailedError: If the local address cannot be resolved
        """
        if self.config.client_base_uri and self.config.client_base_uri.strip():
            return self.config.client_base_uri.rstrip("/")
        try:
            address = socket.gethostbyname(socket.gethostname())
        except OSError as e:
            logger.error("remote.webhook.host_unresolved", error=str(e))
            raise TerraformBootRequestFailedError(f"Cannot resolve local address: {e}") from e
        return f"http://{address}:{self.port}"

    def build_webhook_config(self, task: DeployTask, operation: DeployOperation) -> WebhookConfig:
        callback_uri = self.config.callback_uri(operation.value)
        return WebhookConfig(
            url=f"{self.get_client_request_base_url()}{callback_uri}{task.task_id}",
            auth_type=WebhookAuthType.NONE,
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def deploy(self, task: DeployTask) -> DeployResult:
        variables = self.environments.assemble(task, is_deploy_request=True)
        request = TerraformAsyncDeployFromScriptsRequest(
            request_id=task.id,
            is_plan_only=False,
            scripts=self.script_resolver.get_files(task).scripts,
            variables=variables.input_variables,
            env_variables=variables.env_variables,
            webhook_config=self.build_webhook_config(task, DeployOperation.DEPLOY),
        )
        await self.client.async_deploy_with_scripts(request)
        logger.info("remote.deploy.submitted", task_id=task.task_id)
        return DeployResult(id=task.id)

    async def _destroy(self, task: DeployTask, stored_state: str) -> DeployResult:
        variables = self.environments.assemble(task, is_deploy_request=False)
        request = TerraformAsyncDestroyFromScriptsRequest(
            request_id=task.id,
            scripts=self.script_resolver.get_files(task).scripts,
            tf_state=stored_state,
            variables=variables.input_variables,
            env_variables=variables.env_variables,
            webhook_config=self.build_webhook_config(task, DeployOperation.DESTROY),
        )
        await self.client.async_destroy_with_scripts(request)
        logger.info("remote.destroy.submitted", task_id=task.task_id)
        return DeployResult(id=task.id)

    async def validate(self, ocl: ServiceDefinition) -> ValidationResult:
        request = TerraformDeployWithScriptsRequest(
            is_plan_only=False,
            scripts=self.script_resolver.get_files_by_ocl(ocl).scripts,
        )
        response = await self.client.validate_with_scripts(request)
        return ValidationResult(valid=response.valid, diagnostics=response.diagnostics)

    async def get_deploy_plan_as_json(self, task: DeployTask) -> str:
        variables = self.environments.assemble(task, is_deploy_request=True)
        request = TerraformPlanWithScriptsRequest(
            request_id=task.id,
            scripts=self.script_resolver.get_files(task).scripts,
            variables=variables.input_variables,
            env_variables=variables.env_variables,
        )
        plan = await self.client.plan_with_scripts(request)
        return plan.plan

    def delete_task_workspace(self, task_id: str) -> None:
        """The remote service owns its workspaces, nothing to release here."""

    async def close(self) -> None:
        await self.client.close()
