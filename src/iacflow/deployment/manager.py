"""
Deployment service.

Routes tasks to the back-end registered for their deployer kind, bounds the
number of concurrent operations and keeps the callback correlation table
current for every deploy and destroy.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import timedelta

import httpx
import structlog

from iacflow.deployment.callbacks import CallbackCorrelator
from iacflow.deployment.exceptions import (
    DeployerNotFoundError,
    ScriptFormatInvalidError,
    ServiceNotDeployedError,
)
from iacflow.deployment.interfaces import Deployment
from iacflow.deployment.local import TerraformLocalDeployment
from iacflow.deployment.models import (
    DeployerKind,
    DeployOperation,
    DeployResult,
    DeployTask,
    ServiceDefinition,
    ValidationResult,
)
from iacflow.deployment.remote import TerraformBootClient, TerraformBootDeployment
from iacflow.deployment.scripts import ScriptResolver
from iacflow.deployment.state import StateExtractor
from iacflow.deployment.variables import CredentialProvider, DeployEnvironments
from iacflow.logging import bind_task_context
from iacflow.plugins.manager import PluginManager, build_default_plugin_manager
from iacflow.settings import ExecutorMode, Settings, get_settings

logger = structlog.get_logger(__name__)


class DeployerKindManager:
    """Back-ends keyed by the IaC tool they wrap."""

    def __init__(self, deployments: Iterable[Deployment] = ()) -> None:
        self._deployments: dict[DeployerKind, Deployment] = {}
        for deployment in deployments:
            self._deployments[deployment.deployer_kind] = deployment

    def get_deployment(self, kind: DeployerKind) -> Deployment:
        try:
            return self._deployments[kind]
        except KeyError:
            raise DeployerNotFoundError(kind.value) from None

    @property
    def kinds(self) -> list[DeployerKind]:
        return list(self._deployments)

    def deployments(self) -> list[Deployment]:
        return list(self._deployments.values())


class DeployService:
    """Entry point of the orchestration engine."""

    def __init__(
        self,
        kind_manager: DeployerKindManager,
        correlator: CallbackCorrelator | None = None,
        max_workers: int = 4,
        pending_timeout: timedelta | None = None,
        result_retention: timedelta | None = None,
    ) -> None:
        self.kind_manager = kind_manager
        self.correlator = correlator or CallbackCorrelator()
        self.max_workers = max_workers
        self.pending_timeout = pending_timeout
        self.result_retention = result_retention
        self._slots = asyncio.Semaphore(max_workers)

    async def deploy(self, task: DeployTask) -> DeployResult:
        """
        Deploy a task on the back-end for its deployer kind.

        Returns the terminal result for synchronous back-ends and the pending
        result (id only, no state) for asynchronous ones.
        """
        deployment = self.kind_manager.get_deployment(task.deployer_kind)
        return await self._run(
            task, DeployOperation.DEPLOY, deployment, lambda: deployment.deploy(task)
        )

    async def destroy(self, task: DeployTask, stored_state: str | None) -> DeployResult:
        """
        Destroy the resources of a previously deployed task.

        Raises:
            ServiceNotDeployedError: If no state is supplied; no back-end is called
        """
        if not stored_state or not stored_state.strip():
            raise ServiceNotDeployedError(task.task_id)
        deployment = self.kind_manager.get_deployment(task.deployer_kind)
        return await self._run(
            task,
            DeployOperation.DESTROY,
            deployment,
            lambda: deployment.destroy(task, stored_state),
        )

    async def _run(
        self,
        task: DeployTask,
        operation: DeployOperation,
        deployment: Deployment,
        call: Callable[[], Awaitable[DeployResult]],
    ) -> DeployResult:
        pending = self.correlator.register(task.id, operation)
        try:
            async with self._slots:
                bind_task_context(task.task_id, operation.value)
                logger.info(
                    "deploy_service.operation.start",
                    kind=deployment.deployer_kind.value,
                    remote=deployment.is_async,
                )
                result = await call()
        except Exception:
            # nothing reached the back-end or it failed before accepting the task
            self.correlator.forget(task.id, operation)
            raise

        if result.is_terminal:
            stored = self.correlator.complete(task.id, result, operation)
            return stored or result
        return self.correlator.get_result(task.id, operation) or pending

    def get_result(
        self, task_id: str, operation: DeployOperation | None = None
    ) -> DeployResult | None:
        return self.correlator.get_result(task_id, operation)

    async def validate(self, ocl: ServiceDefinition) -> ValidationResult:
        return await self.kind_manager.get_deployment(ocl.deployment.kind).validate(ocl)

    async def validate_service_deployment(self, ocl: ServiceDefinition) -> ValidationResult:
        """
        Validate template scripts at registration.

        Raises:
            ScriptFormatInvalidError: With the diagnostic details when invalid
        """
        result = await self.validate(ocl)
        if not result.valid:
            raise ScriptFormatInvalidError(
                [d.detail for d in result.diagnostics], kind_name=ocl.deployment.kind.value
            )
        return result

    async def get_deploy_plan_as_json(self, task: DeployTask) -> str:
        deployment = self.kind_manager.get_deployment(task.deployer_kind)
        async with self._slots:
            return await deployment.get_deploy_plan_as_json(task)

    def delete_task_workspace(self, task: DeployTask) -> None:
        self.kind_manager.get_deployment(task.deployer_kind).delete_task_workspace(task.task_id)

    async def close(self) -> None:
        """Release back-end connections."""
        for deployment in self.kind_manager.deployments():
            await deployment.close()
        logger.info("deploy_service.closed")

    def expire_pending(self, older_than: timedelta | None = None) -> list[str]:
        """Fail remote operations whose callback is overdue; a no-op without a timeout."""
        timeout = older_than or self.pending_timeout
        if timeout is None:
            return []
        return self.correlator.expire_pending(timeout)

    def purge_terminal(self, older_than: timedelta | None = None) -> int:
        """Forget finished results older than the retention; a no-op without one."""
        retention = older_than or self.result_retention
        if retention is None:
            return 0
        return self.correlator.purge_terminal(retention)

    def run_housekeeping(self) -> None:
        """Expire overdue pending operations, then purge old finished ones."""
        expired = self.expire_pending()
        purged = self.purge_terminal()
        logger.debug("deploy_service.housekeeping", expired=len(expired), purged=purged)


def build_deploy_service(
    settings: Settings | None = None,
    plugin_manager: PluginManager | None = None,
    credential_provider: CredentialProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DeployService:
    """Wire the engine with the back-end selected in settings."""
    settings = settings or get_settings()
    config = settings.deployment
    plugin_manager = plugin_manager or build_default_plugin_manager()
    resolver = ScriptResolver(plugin_manager)
    environments = DeployEnvironments(plugin_manager, credential_provider)
    state_extractor = StateExtractor()

    deployments: list[Deployment] = []
    if config.executor == ExecutorMode.REMOTE:
        client = TerraformBootClient(
            base_url=config.remote.endpoint,
            token=config.remote.token,
            verify_ssl=config.remote.verify_ssl,
            timeout=config.remote.timeout,
            transport=transport,
        )
        deployments.append(
            TerraformBootDeployment(
                client, resolver, environments, config=config.remote, port=settings.port
            )
        )
    else:
        for kind in (DeployerKind.TERRAFORM, DeployerKind.OPEN_TOFU):
            deployments.append(
                TerraformLocalDeployment(
                    resolver,
                    environments,
                    config=config.local,
                    kind=kind,
                    state_extractor=state_extractor,
                )
            )

    pending_timeout = (
        timedelta(seconds=config.pending_timeout_seconds)
        if config.pending_timeout_seconds
        else None
    )
    result_retention = (
        timedelta(seconds=config.result_retention_seconds)
        if config.result_retention_seconds
        else None
    )
    logger.info(
        "deploy_service.configured",
        executor=config.executor.value,
        kinds=[d.deployer_kind.value for d in deployments],
        max_workers=config.max_workers,
    )
    return DeployService(
        DeployerKindManager(deployments),
        CallbackCorrelator(state_extractor),
        max_workers=config.max_workers,
        pending_timeout=pending_timeout,
        result_retention=result_retention,
    )
