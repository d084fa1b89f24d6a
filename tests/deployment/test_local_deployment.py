"""
Tests for the local execution back-end.
"""

import json

import pytest

from iacflow.deployment.exceptions import ServiceNotDeployedError, TerraformExecutorError
from iacflow.deployment.local import TerraformLocalDeployment
from iacflow.deployment.models import (
    STATE_FILE_NAME,
    DeployerKind,
    DeployerTaskStatus,
    DeployResourceKind,
)
from tests.helpers.terraform import (
    ERROR_DEPLOYER,
    INVALID_DEPLOYER,
    PLAN_JSON,
    SAMPLE_STATE,
    UNDECLARED_DETAIL,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def deployment(script_resolver, environments, local_settings, executor_factory):
    return TerraformLocalDeployment(
        script_resolver,
        environments,
        config=local_settings,
        executor_factory=executor_factory,
    )


class TestDeploy:
    @pytest.mark.asyncio
    async def test_deploy_success(self, deployment, deploy_task, executors):
        result = await deployment.deploy(deploy_task)

        assert result.id == deploy_task.id
        assert result.status == DeployerTaskStatus.DEPLOY_SUCCESS
        assert result.message == "deploy_success"
        assert result.state == SAMPLE_STATE
        assert [r.kind for r in result.resources] == [
            DeployResourceKind.VM,
            DeployResourceKind.UNKNOWN,
        ]
        assert result.properties["ecs_host"] == "192.168.0.10"
        assert executors[0].command_names == ["init", "apply"]

    @pytest.mark.asyncio
    async def test_workspace_materialized(self, deployment, deploy_task, executors):
        await deployment.deploy(deploy_task)

        workspace = deployment.get_workspace_path(deploy_task.task_id)
        assert 'provider "huaweicloud"' in (workspace / "provider.tf").read_text()
        assert (workspace / "deployer.tf").read_text() == deploy_task.ocl.deployment.deployer
        variables = json.loads((workspace / "variables.tfvars.json").read_text())
        assert variables["admin_passwd"] == "111111111@Qq"
        assert variables["worker_nodes_count"] == "3"

        executor = executors[0]
        assert executor.binary == "terraform"
        assert executor.workspace == workspace
        assert executor.var_file == "variables.tfvars.json"
        assert executor.env["HW_REGION_NAME"] == "cn-southwest-2"
        assert executor.env["HW_TF_LOG"] == "INFO"

    @pytest.mark.asyncio
    async def test_deploy_invalid_script_fails_without_state(self, deployment, make_task):
        task = make_task(INVALID_DEPLOYER)

        result = await deployment.deploy(task)

        assert result.status == DeployerTaskStatus.DEPLOY_FAILED
        assert result.state is None
        assert result.message != "deploy_success"
        assert UNDECLARED_DETAIL in result.message
        assert result.resources == []

    @pytest.mark.asyncio
    async def test_wrong_state_shape_keeps_state(self, deployment, deploy_task, monkeypatch):
        monkeypatch.setattr(
            deployment.state_extractor, "load", lambda state: {"resources": ["oops"]}
        )

        result = await deployment.deploy(deploy_task)

        assert result.status == DeployerTaskStatus.DEPLOY_SUCCESS
        assert result.state == SAMPLE_STATE
        assert result.resources == []

    @pytest.mark.asyncio
    async def test_stale_state_removed_before_deploy(self, deployment, make_task):
        task = make_task(INVALID_DEPLOYER)
        workspace = deployment.get_workspace_path(task.task_id)
        workspace.mkdir(parents=True)
        (workspace / STATE_FILE_NAME).write_text(SAMPLE_STATE)

        result = await deployment.deploy(task)

        assert result.state is None
        assert not (workspace / STATE_FILE_NAME).exists()

    @pytest.mark.asyncio
    async def test_opentofu_kind_uses_tofu_binary(
        self, script_resolver, environments, local_settings, executor_factory, make_task, executors
    ):
        deployment = TerraformLocalDeployment(
            script_resolver,
            environments,
            config=local_settings,
            kind=DeployerKind.OPEN_TOFU,
            executor_factory=executor_factory,
        )

        result = await deployment.deploy(make_task(kind=DeployerKind.OPEN_TOFU))

        assert result.status == DeployerTaskStatus.DEPLOY_SUCCESS
        assert executors[0].binary == "tofu"
        assert deployment.get_deployer_kind() == DeployerKind.OPEN_TOFU


class TestDestroy:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored_state", [None, "", "   "])
    async def test_destroy_without_state_raises(
        self, deployment, deploy_task, executors, stored_state
    ):
        with pytest.raises(ServiceNotDeployedError) as exc_info:
            await deployment.destroy(deploy_task, stored_state)

        assert exc_info.value.context == {"task_id": deploy_task.task_id}
        assert executors == []

    @pytest.mark.asyncio
    async def test_destroy_after_deploy(self, deployment, deploy_task, executors):
        deployed = await deployment.deploy(deploy_task)
        deployment.delete_task_workspace(deploy_task.task_id)

        result = await deployment.destroy(deploy_task, deployed.state)

        assert result.status == DeployerTaskStatus.DESTROY_SUCCESS
        assert result.message == "destroy_success"
        assert json.loads(result.state)["resources"] == []
        assert executors[1].command_names == ["init", "destroy"]

    @pytest.mark.asyncio
    async def test_destroy_failure_reported(self, deployment, make_task):
        task = make_task(ERROR_DEPLOYER)

        result = await deployment.destroy(task, SAMPLE_STATE)

        assert result.status == DeployerTaskStatus.DESTROY_FAILED
        assert "Unclosed configuration block" in result.message


class TestValidate:
    @pytest.mark.asyncio
    async def test_valid_script(self, deployment, service_definition):
        result = await deployment.validate(service_definition)

        assert result.valid is True
        assert result.diagnostics == []

    @pytest.mark.asyncio
    async def test_invalid_script_diagnostics(self, deployment, make_task, executors):
        ocl = make_task(INVALID_DEPLOYER).ocl

        result = await deployment.validate(ocl)

        assert result.valid is False
        assert result.diagnostics[0].detail == UNDECLARED_DETAIL
        assert executors[0].commands[0] == ("init", "-no-color", "-input=false", "-backend=false")

    @pytest.mark.asyncio
    async def test_validate_workspace_removed(self, deployment, service_definition):
        await deployment.validate(service_definition)

        assert list(deployment.workspace_root.glob("validate-*")) == []

    @pytest.mark.asyncio
    async def test_unparseable_script_raises(self, deployment, make_task):
        with pytest.raises(TerraformExecutorError):
            await deployment.validate(make_task(ERROR_DEPLOYER).ocl)

        assert list(deployment.workspace_root.glob("validate-*")) == []


class TestPlan:
    @pytest.mark.asyncio
    async def test_plan_as_json(self, deployment, deploy_task, executors):
        plan = await deployment.get_deploy_plan_as_json(deploy_task)

        assert plan == PLAN_JSON
        assert executors[0].command_names == ["init", "plan", "show"]

    @pytest.mark.asyncio
    async def test_plan_of_unparseable_script_raises(self, deployment, make_task):
        with pytest.raises(TerraformExecutorError):
            await deployment.get_deploy_plan_as_json(make_task(ERROR_DEPLOYER))


class TestWorkspace:
    @pytest.mark.asyncio
    async def test_delete_task_workspace_is_idempotent(self, deployment, deploy_task):
        await deployment.deploy(deploy_task)
        workspace = deployment.get_workspace_path(deploy_task.task_id)
        assert workspace.exists()

        deployment.delete_task_workspace(deploy_task.task_id)
        deployment.delete_task_workspace(deploy_task.task_id)

        assert not workspace.exists()

    def test_workspace_below_configured_base(self, deployment, local_settings, tmp_path):
        assert deployment.workspace_root == tmp_path / local_settings.workspace_directory
        assert deployment.get_workspace_path("abc") == deployment.workspace_root / "abc"
