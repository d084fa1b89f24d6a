"""Script resolution for deploy tasks and service templates."""

import structlog

from iacflow.deployment.exceptions import ScriptResolutionError
from iacflow.deployment.models import DeployTask, ScriptBundle, ServiceDefinition
from iacflow.plugins.manager import PluginManager

logger = structlog.get_logger(__name__)


class ScriptResolver:
    """Builds the ordered script bundle for a task from the plugin registry."""

    def __init__(self, plugin_manager: PluginManager) -> None:
        self.plugin_manager = plugin_manager

    def get_provider_script(self, csp: str, region: str) -> str:
        script = self.plugin_manager.get_terraform_provider_for_region_by_csp(csp, region)
        if not script or not script.strip():
            raise ScriptResolutionError(
                f"Empty provider script for {csp} in region {region}",
                context={"csp": str(csp), "region": region},
            )
        return script

    @staticmethod
    def get_deployer_script(ocl: ServiceDefinition) -> str:
        return ocl.deployment.deployer

    def get_files(self, task: DeployTask) -> ScriptBundle:
        """Provider script for the requested region followed by the deployer script."""
        request = task.deploy_request
        provider = self.get_provider_script(request.csp, request.region.name)
        return ScriptBundle(provider=provider, deployer=self.get_deployer_script(task.ocl))

    def get_files_by_ocl(self, ocl: ServiceDefinition) -> ScriptBundle:
        """Bundle for template validation, bound to the template's first region."""
        if not ocl.regions:
            raise ScriptResolutionError(
                f"Service template {ocl.name} declares no region",
                context={"service": ocl.name},
            )
        provider = self.get_provider_script(ocl.csp, ocl.regions[0].name)
        return ScriptBundle(provider=provider, deployer=self.get_deployer_script(ocl))
