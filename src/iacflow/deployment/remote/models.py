"""Request and response bodies of the terraform-boot API."""

from typing import Any
from uuid import UUID

from pydantic import Field

from iacflow.deployment.models import CamelModel, ValidateDiagnostics, WebhookConfig


class TerraformPlanWithScriptsRequest(CamelModel):
    request_id: UUID | None = None
    scripts: list[str]
    variables: dict[str, Any] = Field(default_factory=dict)
    env_variables: dict[str, str] = Field(default_factory=dict)


class TerraformDeployWithScriptsRequest(TerraformPlanWithScriptsRequest):
    is_plan_only: bool = False


class TerraformAsyncDeployFromScriptsRequest(TerraformDeployWithScriptsRequest):
    webhook_config: WebhookConfig


class TerraformAsyncDestroyFromScriptsRequest(TerraformPlanWithScriptsRequest):
    tf_state: str
    webhook_config: WebhookConfig


class TerraformValidationResult(CamelModel):
    valid: bool
    diagnostics: list[ValidateDiagnostics] = Field(default_factory=list)


class TerraformPlan(CamelModel):
    plan: str
