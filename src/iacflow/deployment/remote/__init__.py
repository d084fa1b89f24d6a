"""Remote (terraform-boot) execution back-end."""

from iacflow.deployment.remote.client import TerraformBootClient
from iacflow.deployment.remote.deployment import TerraformBootDeployment

__all__ = ["TerraformBootClient", "TerraformBootDeployment"]
