"""Cloud provider plugin interface."""

import os
from abc import ABC, abstractmethod

from iacflow.deployment.exceptions import ScriptResolutionError
from iacflow.deployment.models import Csp


class OrchestratorPlugin(ABC):
    """
    What the engine needs from a cloud provider plugin.

    A plugin binds deployer scripts to its cloud (provider script), names
    the credential variables its provider reads and the variables that must
    always be present in the process environment.
    """

    #: Regions the provider script can be rendered for.
    regions: tuple[str, ...] = ()

    @property
    @abstractmethod
    def csp(self) -> Csp:
        """Provider identifier the plugin is registered under."""

    @abstractmethod
    def render_provider(self, region: str) -> str:
        """Render the provider block for a region."""

    def get_provider(self, region: str) -> str:
        """
        Provider-binding script for a region.

        Raises:
            ScriptResolutionError: If the region is unknown to the plugin
        """
        if self.regions and region not in self.regions:
            raise ScriptResolutionError(
                f"Region {region} is not supported by the {self.csp.value} plugin",
                context={"csp": self.csp.value, "region": region},
            )
        return self.render_provider(region)

    def credential_variable_names(self) -> list[str]:
        """Environment variable names holding provider credentials."""
        return []

    def required_properties(self) -> list[str]:
        """Environment variables every execution of this provider needs."""
        return []

    def get_credential_variables(self) -> dict[str, str]:
        """Credential values available in the process environment."""
        return {
            name: os.environ[name]
            for name in self.credential_variable_names()
            if os.environ.get(name) is not None
        }

    def get_mandatory_variables(self, region: str) -> dict[str, str]:
        """Values of the required properties, looked up in the process environment."""
        return {
            name: os.environ[name]
            for name in self.required_properties()
            if os.environ.get(name) is not None
        }
