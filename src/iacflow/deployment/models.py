"""
Deployment data models.

Pydantic models shared by the execution back-ends, the callback
correlator and the state extractor.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

STATE_FILE_NAME = "terraform.tfstate"


class DeployerKind(str, Enum):
    """IaC tool wrapped by a back-end."""

    TERRAFORM = "terraform"
    OPEN_TOFU = "opentofu"


class Csp(str, Enum):
    """Cloud service providers known to the plugin registry."""

    HUAWEI = "huawei"
    FLEXIBLE_ENGINE = "flexibleEngine"
    OPENSTACK = "openstack"
    SCS = "scs"


class DeployVariableKind(str, Enum):
    """Where a declared variable goes and where its value comes from."""

    FIX_ENV = "fix_env"
    FIX_VARIABLE = "fix_variable"
    ENV = "env"
    VARIABLE = "variable"
    ENV_ENV = "env_env"
    ENV_VARIABLE = "env_variable"


class DeployerTaskStatus(str, Enum):
    """Lifecycle of one deploy or destroy operation."""

    DEPLOYING = "deploying"
    DESTROYING = "destroying"
    DEPLOY_SUCCESS = "deploy_success"
    DEPLOY_FAILED = "deploy_failed"
    DESTROY_SUCCESS = "destroy_success"
    DESTROY_FAILED = "destroy_failed"


TERMINAL_STATUSES = {
    DeployerTaskStatus.DEPLOY_SUCCESS,
    DeployerTaskStatus.DEPLOY_FAILED,
    DeployerTaskStatus.DESTROY_SUCCESS,
    DeployerTaskStatus.DESTROY_FAILED,
}


class DeployOperation(str, Enum):
    """Operations that produce a DeployResult."""

    DEPLOY = "deploy"
    DESTROY = "destroy"

    @property
    def pending_status(self) -> DeployerTaskStatus:
        if self is DeployOperation.DEPLOY:
            return DeployerTaskStatus.DEPLOYING
        return DeployerTaskStatus.DESTROYING

    @property
    def success_status(self) -> DeployerTaskStatus:
        if self is DeployOperation.DEPLOY:
            return DeployerTaskStatus.DEPLOY_SUCCESS
        return DeployerTaskStatus.DESTROY_SUCCESS

    @property
    def failed_status(self) -> DeployerTaskStatus:
        if self is DeployOperation.DEPLOY:
            return DeployerTaskStatus.DEPLOY_FAILED
        return DeployerTaskStatus.DESTROY_FAILED


class DeployResourceKind(str, Enum):
    """Kinds of deployed resources."""

    VM = "vm"
    CONTAINER = "container"
    PUBLIC_IP = "publicIP"
    VPC = "vpc"
    VOLUME = "volume"
    UNKNOWN = "unknown"
    SECURITY_GROUP = "security_group"
    SECURITY_GROUP_RULE = "security_group_rule"
    KEYPAIR = "keypair"
    SUBNET = "subnet"


class WebhookAuthType(str, Enum):
    """Authentication the remote service uses when calling back."""

    NONE = "NONE"
    OAUTH2 = "OAUTH2"


class CamelModel(BaseModel):
    """Model serialized with camelCase keys on the wire, accepts either casing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# Service definition
# ============================================================


class Region(BaseModel):
    """Cloud region."""

    name: str
    area: str | None = None


class DeployVariable(BaseModel):
    """Variable declared by a service template."""

    name: str
    kind: DeployVariableKind = DeployVariableKind.VARIABLE
    description: str = ""
    value: Any | None = None
    mandatory: bool = False
    sensitive: bool = False


class Flavor(BaseModel):
    """Selectable flavor, its properties become input variables."""

    name: str
    properties: dict[str, Any] = Field(default_factory=dict)


class DeploymentSpec(BaseModel):
    """Deployment section of a service template."""

    kind: DeployerKind = DeployerKind.TERRAFORM
    deployer: str
    variables: list[DeployVariable] = Field(default_factory=list)


class ServiceDefinition(BaseModel):
    """Service template as registered in the catalog."""

    name: str
    service_version: str = "1.0.0"
    category: str = "compute"
    csp: Csp
    regions: list[Region] = Field(default_factory=list)
    flavors: list[Flavor] = Field(default_factory=list)
    deployment: DeploymentSpec

    def get_flavor(self, name: str | None) -> Flavor | None:
        for flavor in self.flavors:
            if flavor.name == name:
                return flavor
        return None


# ============================================================
# Task and request
# ============================================================


class DeployRequest(BaseModel):
    """User supplied deploy parameters, validated upstream."""

    service_name: str
    version: str
    customer_service_name: str | None = None
    flavor: str | None = None
    region: Region
    csp: Csp
    category: str = "compute"
    service_request_properties: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None


class DeployTask(BaseModel):
    """One unit of work handed to an execution back-end."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    ocl: ServiceDefinition
    deploy_request: DeployRequest

    @property
    def deployer_kind(self) -> DeployerKind:
        return self.ocl.deployment.kind

    @property
    def task_id(self) -> str:
        return str(self.id)


class ScriptBundle(BaseModel):
    """Scripts for one task, provider script first, deployer script second."""

    provider: str
    deployer: str

    @property
    def scripts(self) -> list[str]:
        return [self.provider, self.deployer]


class VariableSet(BaseModel):
    """Input variables for the script and environment for the process."""

    input_variables: dict[str, Any] = Field(default_factory=dict)
    env_variables: dict[str, str] = Field(default_factory=dict)


# ============================================================
# Results
# ============================================================


class DeployResource(BaseModel):
    """Resource record derived from a state document."""

    id: UUID = Field(default_factory=uuid4)
    resource_id: str | None = None
    name: str
    kind: DeployResourceKind = DeployResourceKind.UNKNOWN
    group_type: str | None = None
    group_name: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class DeployResult(BaseModel):
    """Outcome of one deploy or destroy operation."""

    id: UUID
    status: DeployerTaskStatus | None = None
    message: str | None = None
    private_properties: dict[str, str] = Field(default_factory=dict)
    properties: dict[str, str] = Field(default_factory=dict)
    resources: list[DeployResource] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def state(self) -> str | None:
        """Raw state document, None until a successful operation stored one."""
        return self.private_properties.get(STATE_FILE_NAME)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ValidateDiagnostics(BaseModel):
    """One validation finding."""

    detail: str


class ValidationResult(BaseModel):
    """Result of a dry script validation."""

    valid: bool
    diagnostics: list[ValidateDiagnostics] = Field(default_factory=list)


# ============================================================
# Remote wire models
# ============================================================


class WebhookConfig(CamelModel):
    """Where the remote service reports completion."""

    url: str
    auth_type: WebhookAuthType = WebhookAuthType.NONE


class CallbackOutcome(CamelModel):
    """Body of a webhook callback from the remote service."""

    command_successful: bool
    command_std_output: str | None = None
    command_std_error: str | None = None
    terraform_state: str | None = None
    import_variables: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _blank_state_is_none(self) -> "CallbackOutcome":
        if self.terraform_state is not None and not self.terraform_state.strip():
            self.terraform_state = None
        return self

    def diagnostics(self) -> str:
        return (self.command_std_error or self.command_std_output or "").strip()
