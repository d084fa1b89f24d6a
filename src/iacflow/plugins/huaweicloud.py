"""Huawei Cloud plugin."""

from iacflow.deployment.models import Csp
from iacflow.plugins.base import OrchestratorPlugin

ACCESS_KEY = "HW_ACCESS_KEY"
SECRET_KEY = "HW_SECRET_KEY"
REGION_NAME = "HW_REGION_NAME"
ENTERPRISE_PROJECT_ID = "HW_ENTERPRISE_PROJECT_ID"

PROVIDER_TEMPLATE = """terraform {{
  required_providers {{
    huaweicloud = {{
      source  = "huaweicloud/huaweicloud"
      version = "{version}"
    }}
  }}
}}

provider "huaweicloud" {{
  region = "{region}"
}}
"""


class HuaweiCloudPlugin(OrchestratorPlugin):
    """Binds scripts to the huaweicloud Terraform provider."""

    regions = (
        "cn-north-4",
        "cn-southwest-2",
        "cn-east-3",
        "cn-south-1",
        "ap-southeast-1",
        "eu-west-101",
    )

    def __init__(self, provider_version: str = "~> 1.61.0") -> None:
        self.provider_version = provider_version

    @property
    def csp(self) -> Csp:
        return Csp.HUAWEI

    def render_provider(self, region: str) -> str:
        return PROVIDER_TEMPLATE.format(version=self.provider_version, region=region)

    def credential_variable_names(self) -> list[str]:
        return [ACCESS_KEY, SECRET_KEY]

    def required_properties(self) -> list[str]:
        return [ENTERPRISE_PROJECT_ID]

    def get_mandatory_variables(self, region: str) -> dict[str, str]:
        variables = super().get_mandatory_variables(region)
        variables[REGION_NAME] = region
        return variables
