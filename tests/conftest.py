"""
Global pytest configuration and fixtures for iacflow tests.
"""

import os

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from iacflow.deployment.models import (  # noqa: E402
    Csp,
    DeployerKind,
    DeploymentSpec,
    DeployRequest,
    DeployTask,
    DeployVariable,
    DeployVariableKind,
    Flavor,
    Region,
    ServiceDefinition,
)
from iacflow.deployment.scripts import ScriptResolver  # noqa: E402
from iacflow.deployment.variables import DeployEnvironments  # noqa: E402
from iacflow.plugins.manager import build_default_plugin_manager  # noqa: E402
from iacflow.settings import LocalExecutorSettings  # noqa: E402
from tests.helpers.terraform import VALID_DEPLOYER, FakeTerraformExecutor  # noqa: E402


@pytest.fixture
def executors():
    """Executors created by the fake factory, in creation order."""
    return []


@pytest.fixture
def executor_factory(executors):
    def factory(**kwargs):
        executor = FakeTerraformExecutor(**kwargs)
        executors.append(executor)
        return executor

    return factory


@pytest.fixture
def plugin_manager():
    return build_default_plugin_manager()


@pytest.fixture
def script_resolver(plugin_manager):
    return ScriptResolver(plugin_manager)


@pytest.fixture
def environments(plugin_manager):
    return DeployEnvironments(plugin_manager)


@pytest.fixture
def local_settings(tmp_path):
    return LocalExecutorSettings(base_directory=str(tmp_path))


@pytest.fixture
def service_definition():
    """Huawei Cloud service template with one flavor and mixed variable kinds."""
    return ServiceDefinition(
        name="kafka-cluster",
        service_version="v3.3.2",
        category="middleware",
        csp=Csp.HUAWEI,
        regions=[Region(name="cn-southwest-2", area="Asia China")],
        flavors=[
            Flavor(
                name="1-zookeeper-with-3-worker-nodes-normal",
                properties={"worker_nodes_count": "3"},
            )
        ],
        deployment=DeploymentSpec(
            kind=DeployerKind.TERRAFORM,
            deployer=VALID_DEPLOYER,
            variables=[
                DeployVariable(
                    name="admin_passwd",
                    kind=DeployVariableKind.VARIABLE,
                    description="Admin password of the cluster",
                    mandatory=True,
                    sensitive=True,
                ),
                DeployVariable(
                    name="vpc_name", kind=DeployVariableKind.VARIABLE, value="ecs-vpc-default"
                ),
                DeployVariable(
                    name="secgroup_id", kind=DeployVariableKind.FIX_VARIABLE, value="sg-7f3a"
                ),
                DeployVariable(name="HW_TF_LOG", kind=DeployVariableKind.FIX_ENV, value="INFO"),
            ],
        ),
    )


@pytest.fixture
def deploy_request():
    return DeployRequest(
        service_name="kafka-cluster",
        version="v3.3.2",
        customer_service_name="kafka-prod",
        flavor="1-zookeeper-with-3-worker-nodes-normal",
        region=Region(name="cn-southwest-2", area="Asia China"),
        csp=Csp.HUAWEI,
        category="middleware",
        service_request_properties={"admin_passwd": "111111111@Qq"},
        user_id="user-0001",
    )


@pytest.fixture
def deploy_task(service_definition, deploy_request):
    return DeployTask(ocl=service_definition, deploy_request=deploy_request)


@pytest.fixture
def make_task(service_definition, deploy_request):
    """Build a task for the sample template with another deployer script or kind."""

    def _make(deployer: str = VALID_DEPLOYER, kind: DeployerKind = DeployerKind.TERRAFORM):
        deployment = service_definition.deployment.model_copy(
            update={"deployer": deployer, "kind": kind}
        )
        ocl = service_definition.model_copy(update={"deployment": deployment})
        return DeployTask(ocl=ocl, deploy_request=deploy_request)

    return _make
