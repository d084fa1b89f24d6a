"""
iacflow - Deployment orchestration for infrastructure-as-code service templates.

This package coordinates Terraform/OpenTofu executions for service templates:
- Provider script resolution through cloud provider plugins
- Local (child process) and remote (terraform-boot) execution back-ends
- Webhook callback correlation for asynchronous executions
- Terraform state parsing into deployed resource records
"""

__version__ = "1.0.0"


def get_version() -> str:
    """Get package version."""
    return __version__
