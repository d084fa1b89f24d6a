"""
Local execution back-end.

Runs the IaC binary as a child process in a per-task workspace directory
and returns terminal results synchronously.
"""

import json
import shutil
import uuid
from collections.abc import Callable
from pathlib import Path

import structlog

from iacflow.deployment.exceptions import DeploymentError, TerraformExecutorError
from iacflow.deployment.interfaces import Deployment
from iacflow.deployment.local.executor import TerraformExecutor
from iacflow.deployment.models import (
    STATE_FILE_NAME,
    DeployerKind,
    DeployerTaskStatus,
    DeployResult,
    DeployTask,
    ScriptBundle,
    ServiceDefinition,
    ValidationResult,
    VariableSet,
)
from iacflow.deployment.scripts import ScriptResolver
from iacflow.deployment.state import StateExtractor
from iacflow.deployment.variables import DeployEnvironments
from iacflow.settings import LocalExecutorSettings

logger = structlog.get_logger(__name__)

PROVIDER_FILE_NAME = "provider.tf"
DEPLOYER_FILE_NAME = "deployer.tf"

ExecutorFactory = Callable[..., TerraformExecutor]


class TerraformLocalDeployment(Deployment):
    """Terraform/OpenTofu executed in-process against an isolated workspace."""

    def __init__(
        self,
        script_resolver: ScriptResolver,
        environments: DeployEnvironments,
        config: LocalExecutorSettings | None = None,
        kind: DeployerKind = DeployerKind.TERRAFORM,
        state_extractor: StateExtractor | None = None,
        executor_factory: ExecutorFactory = TerraformExecutor,
    ) -> None:
        self.script_resolver = script_resolver
        self.environments = environments
        self.config = config or LocalExecutorSettings()
        self.kind = kind
        self.state_extractor = state_extractor or StateExtractor()
        self.executor_factory = executor_factory

    @property
    def deployer_kind(self) -> DeployerKind:
        return self.kind

    @property
    def binary(self) -> str:
        if self.kind == DeployerKind.OPEN_TOFU:
            return self.config.opentofu_binary
        return self.config.terraform_binary

    @property
    def workspace_root(self) -> Path:
        return Path(self.config.base_directory) / self.config.workspace_directory

    def get_workspace_path(self, task_id: str) -> Path:
        return self.workspace_root / str(task_id)

    # ------------------------------------------------------------------
    # Workspace preparation
    # ------------------------------------------------------------------

    def _materialize(
        self,
        workspace: Path,
        bundle: ScriptBundle,
        variables: VariableSet | None = None,
        state: str | None = None,
    ) -> TerraformExecutor:
        workspace.mkdir(parents=True, exist_ok=True)
        (workspace / PROVIDER_FILE_NAME).write_text(bundle.provider, encoding="utf-8")
        (workspace / DEPLOYER_FILE_NAME).write_text(bundle.deployer, encoding="utf-8")

        var_file = None
        env: dict[str, str] = {}
        if variables is not None:
            var_file = self.config.variables_file_name
            (workspace / var_file).write_text(
                json.dumps(variables.input_variables, default=str), encoding="utf-8"
            )
            env = variables.env_variables

        state_path = workspace / STATE_FILE_NAME
        if state is not None:
            state_path.write_text(state, encoding="utf-8")
        elif state_path.exists():
            # never let a previous run's state leak into this one
            state_path.unlink()

        return self.executor_factory(
            binary=self.binary,
            workspace=workspace,
            env=env,
            var_file=var_file,
            log_level=self.config.log_level,
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def deploy(self, task: DeployTask) -> DeployResult:
        task_id = task.task_id
        bundle = self.script_resolver.get_files(task)
        variables = self.environments.assemble(task, is_deploy_request=True)
        executor = self._materialize(self.get_workspace_path(task_id), bundle, variables)

        logger.info("local.deploy.start", task_id=task_id, kind=self.kind.value)
        try:
            await executor.init()
            await executor.apply()
            state = executor.read_state()
            if state is None:
                raise TerraformExecutorError("Deploy finished without a state file")
        except TerraformExecutorError as e:
            logger.error("local.deploy.failed", task_id=task_id, error=e.message)
            return DeployResult(
                id=task.id,
                status=DeployerTaskStatus.DEPLOY_FAILED,
                message=e.message,
            )

        result = DeployResult(
            id=task.id,
            status=DeployerTaskStatus.DEPLOY_SUCCESS,
            message=DeployerTaskStatus.DEPLOY_SUCCESS.value,
            private_properties={STATE_FILE_NAME: state},
        )
        try:
            result.resources = self.state_extractor.extract_resources(state)
            result.properties = self.state_extractor.extract_outputs(state)
        except DeploymentError as e:
            logger.warning("local.deploy.state_unparsed", task_id=task_id, error=e.message)
        logger.info("local.deploy.succeeded", task_id=task_id, resources=len(result.resources))
        return result

    async def _destroy(self, task: DeployTask, stored_state: str) -> DeployResult:
        task_id = task.task_id
        bundle = self.script_resolver.get_files(task)
        variables = self.environments.assemble(task, is_deploy_request=False)
        executor = self._materialize(
            self.get_workspace_path(task_id), bundle, variables, state=stored_state
        )

        logger.info("local.destroy.start", task_id=task_id, kind=self.kind.value)
        try:
            await executor.init()
            await executor.destroy()
        except TerraformExecutorError as e:
            logger.error("local.destroy.failed", task_id=task_id, error=e.message)
            return DeployResult(
                id=task.id,
                status=DeployerTaskStatus.DESTROY_FAILED,
                message=e.message,
            )

        result = DeployResult(
            id=task.id,
            status=DeployerTaskStatus.DESTROY_SUCCESS,
            message=DeployerTaskStatus.DESTROY_SUCCESS.value,
        )
        state = executor.read_state()
        if state is not None:
            result.private_properties[STATE_FILE_NAME] = state
        logger.info("local.destroy.succeeded", task_id=task_id)
        return result

    async def validate(self, ocl: ServiceDefinition) -> ValidationResult:
        bundle = self.script_resolver.get_files_by_ocl(ocl)
        workspace = self.workspace_root / f"validate-{uuid.uuid4()}"
        executor = self._materialize(workspace, bundle)
        try:
            await executor.init(backend=False)
            result = await executor.validate()
        finally:
            shutil.rmtree(workspace, ignore_errors=True)
        logger.info(
            "local.validate.finished",
            service=ocl.name,
            valid=result.valid,
            diagnostics=len(result.diagnostics),
        )
        return result

    async def get_deploy_plan_as_json(self, task: DeployTask) -> str:
        bundle = self.script_resolver.get_files(task)
        variables = self.environments.assemble(task, is_deploy_request=True)
        executor = self._materialize(self.get_workspace_path(task.task_id), bundle, variables)
        await executor.init()
        return await executor.plan_as_json()

    def delete_task_workspace(self, task_id: str) -> None:
        workspace = self.get_workspace_path(task_id)
        if not workspace.exists():
            return
        shutil.rmtree(workspace)
        logger.info("local.workspace.deleted", task_id=str(task_id), path=str(workspace))
