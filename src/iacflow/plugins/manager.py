"""
Plugin registry.

Plugins are registered explicitly at start-up and looked up by the cloud
provider identifier.
"""

from collections.abc import Iterable

import structlog

from iacflow.deployment.exceptions import PluginNotFoundError
from iacflow.deployment.models import Csp
from iacflow.plugins.base import OrchestratorPlugin

logger = structlog.get_logger(__name__)


class PluginManager:
    """Registry of cloud provider plugins keyed by Csp."""

    def __init__(self, plugins: Iterable[OrchestratorPlugin] = ()) -> None:
        self._plugins: dict[Csp, OrchestratorPlugin] = {}
        for plugin in plugins:
            self.register(plugin)

    def register(self, plugin: OrchestratorPlugin) -> None:
        """
        Register a plugin.

        Raises:
            ValueError: If a plugin is already registered for the same Csp
        """
        if plugin.csp in self._plugins:
            raise ValueError(f"Plugin for {plugin.csp.value} already registered")
        self._plugins[plugin.csp] = plugin
        logger.info("plugin.registered", csp=plugin.csp.value, plugin=type(plugin).__name__)

    def get_plugin(self, csp: Csp | str) -> OrchestratorPlugin:
        try:
            return self._plugins[Csp(csp)]
        except (KeyError, ValueError):
            raise PluginNotFoundError(str(getattr(csp, "value", csp))) from None

    def get_terraform_provider_for_region_by_csp(self, csp: Csp | str, region: str) -> str:
        """Provider script for a (cloud, region) pair."""
        return self.get_plugin(csp).get_provider(region)

    @property
    def registered(self) -> list[Csp]:
        return list(self._plugins)


def build_default_plugin_manager() -> PluginManager:
    """Registry with every plugin shipped in this package."""
    from iacflow.plugins.huaweicloud import HuaweiCloudPlugin
    from iacflow.plugins.openstack import OpenstackPlugin, ScsPlugin

    return PluginManager([HuaweiCloudPlugin(), OpenstackPlugin(), ScsPlugin()])
