"""
Cloud provider plugins.

Each plugin knows how to bind deployer scripts to its cloud.
"""

from iacflow.plugins.base import OrchestratorPlugin
from iacflow.plugins.huaweicloud import HuaweiCloudPlugin
from iacflow.plugins.manager import PluginManager, build_default_plugin_manager
from iacflow.plugins.openstack import OpenstackPlugin, ScsPlugin

__all__ = [
    "OrchestratorPlugin",
    "PluginManager",
    "build_default_plugin_manager",
    "HuaweiCloudPlugin",
    "OpenstackPlugin",
    "ScsPlugin",
]
