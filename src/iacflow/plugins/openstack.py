"""OpenStack based plugins (plain OpenStack and SCS)."""

from iacflow.deployment.models import Csp
from iacflow.plugins.base import OrchestratorPlugin

OS_AUTH_URL = "OS_AUTH_URL"
OS_USERNAME = "OS_USERNAME"
OS_PASSWORD = "OS_PASSWORD"
OS_PROJECT_NAME = "OS_PROJECT_NAME"
OS_USER_DOMAIN_NAME = "OS_USER_DOMAIN_NAME"
OS_PROJECT_DOMAIN_NAME = "OS_PROJECT_DOMAIN_NAME"

PROVIDER_TEMPLATE = """terraform {{
  required_providers {{
    openstack = {{
      source  = "terraform-provider-openstack/openstack"
      version = "{version}"
    }}
  }}
}}

provider "openstack" {{
  region = "{region}"
}}
"""


class OpenstackPlugin(OrchestratorPlugin):
    """Binds scripts to the openstack Terraform provider."""

    regions = ("RegionOne",)

    def __init__(self, provider_version: str = "1.52.1") -> None:
        self.provider_version = provider_version

    @property
    def csp(self) -> Csp:
        return Csp.OPENSTACK

    def render_provider(self, region: str) -> str:
        return PROVIDER_TEMPLATE.format(version=self.provider_version, region=region)

    def credential_variable_names(self) -> list[str]:
        return [OS_USERNAME, OS_PASSWORD, OS_PROJECT_NAME]

    def required_properties(self) -> list[str]:
        return [OS_AUTH_URL, OS_USER_DOMAIN_NAME, OS_PROJECT_DOMAIN_NAME]


class ScsPlugin(OpenstackPlugin):
    """Sovereign Cloud Stack, OpenStack API compatible."""

    regions = ("RegionOne", "RegionTwo")

    @property
    def csp(self) -> Csp:
        return Csp.SCS
