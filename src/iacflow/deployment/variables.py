"""
Variable assembly.

Collects input variables and process environment for a task. Sources are
merged in a fixed order, later sources override earlier ones:

    input variables:  declared variables, then selected flavor properties
    environment:      declared env variables, then credentials, then
                      plugin mandatory variables
"""

import os
from collections.abc import Callable
from typing import Any

import structlog

from iacflow.deployment.exceptions import VariableInvalidError
from iacflow.deployment.models import (
    DeployTask,
    DeployVariableKind,
    VariableSet,
)
from iacflow.plugins.manager import PluginManager

logger = structlog.get_logger(__name__)

# (csp, user_id) -> credential environment variables
CredentialProvider = Callable[[str, str | None], dict[str, str]]


class DeployEnvironments:
    """Builds the VariableSet for a deploy task."""

    def __init__(
        self,
        plugin_manager: PluginManager,
        credential_provider: CredentialProvider | None = None,
    ) -> None:
        self.plugin_manager = plugin_manager
        self.credential_provider = credential_provider

    def get_variables(self, task: DeployTask, is_deploy_request: bool) -> dict[str, Any]:
        """
        Input variables declared by the service template.

        Args:
            task: Deploy task
            is_deploy_request: Mandatory variables without a value are rejected
                for deploy requests; destroy and plan reuse whatever is known

        Raises:
            VariableInvalidError: If a mandatory variable has no value on deploy
        """
        properties = task.deploy_request.service_request_properties
        variables: dict[str, Any] = {}
        for variable in task.ocl.deployment.variables:
            if variable.kind == DeployVariableKind.FIX_VARIABLE:
                value = variable.value
            elif variable.kind == DeployVariableKind.VARIABLE:
                value = properties.get(variable.name, variable.value)
            elif variable.kind == DeployVariableKind.ENV_VARIABLE:
                value = os.environ.get(variable.name, variable.value)
            else:
                continue

            if value is None:
                if variable.mandatory and is_deploy_request:
                    raise VariableInvalidError(
                        f"Mandatory variable {variable.name} has no value",
                        context={"variable": variable.name},
                    )
                continue
            variables[variable.name] = value
        return variables

    def get_flavor_variables(self, task: DeployTask) -> dict[str, Any]:
        flavor_name = task.deploy_request.flavor
        if not flavor_name:
            return {}
        flavor = task.ocl.get_flavor(flavor_name)
        if flavor is None:
            raise VariableInvalidError(
                f"Flavor {flavor_name} is not defined by service {task.ocl.name}",
                context={"flavor": flavor_name},
            )
        return dict(flavor.properties)

    def get_env(self, task: DeployTask) -> dict[str, str]:
        properties = task.deploy_request.service_request_properties
        env: dict[str, str] = {}
        for variable in task.ocl.deployment.variables:
            if variable.kind == DeployVariableKind.FIX_ENV:
                value = variable.value
            elif variable.kind == DeployVariableKind.ENV:
                value = properties.get(variable.name, variable.value)
            elif variable.kind == DeployVariableKind.ENV_ENV:
                value = os.environ.get(variable.name, variable.value)
            else:
                continue
            if value is not None:
                env[variable.name] = str(value)
        return env

    def get_credential_variables(self, task: DeployTask) -> dict[str, str]:
        request = task.deploy_request
        credentials = self.plugin_manager.get_plugin(request.csp).get_credential_variables()
        if self.credential_provider is not None:
            credentials.update(self.credential_provider(request.csp.value, request.user_id))
        return credentials

    def get_plugin_mandatory_variables(self, task: DeployTask) -> dict[str, str]:
        request = task.deploy_request
        plugin = self.plugin_manager.get_plugin(request.csp)
        return plugin.get_mandatory_variables(request.region.name)

    def get_input_variables(self, task: DeployTask, is_deploy_request: bool) -> dict[str, Any]:
        variables: dict[str, Any] = {}
        variables.update(self.get_variables(task, is_deploy_request))
        variables.update(self.get_flavor_variables(task))
        return variables

    def get_environment_variables(self, task: DeployTask) -> dict[str, str]:
        env: dict[str, str] = {}
        env.update(self.get_env(task))
        env.update(self.get_credential_variables(task))
        env.update(self.get_plugin_mandatory_variables(task))
        return env

    def assemble(self, task: DeployTask, is_deploy_request: bool = True) -> VariableSet:
        variable_set = VariableSet(
            input_variables=self.get_input_variables(task, is_deploy_request),
            env_variables=self.get_environment_variables(task),
        )
        logger.debug(
            "variables.assembled",
            task_id=task.task_id,
            input_variables=sorted(variable_set.input_variables),
            env_variables=sorted(variable_set.env_variables),
        )
        return variable_set
