#!/usr/bin/env python
"""
CLI commands for the iacflow deployment engine.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ValidationError

from iacflow.deployment.exceptions import DeploymentError
from iacflow.deployment.manager import DeployService, build_deploy_service
from iacflow.deployment.models import DeployerKind, DeployRequest, DeployTask, ServiceDefinition

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class CLIDependencies:
    """Bundle of injectable dependencies used by CLI commands."""

    service_factory: Callable[[], DeployService]
    path_factory: Callable[[str], Path]


def _get_cli_dependencies() -> CLIDependencies:
    """Return the default dependency bundle for CLI commands."""
    return CLIDependencies(service_factory=build_deploy_service, path_factory=Path)


def _load_json(deps: CLIDependencies, path: str) -> Any:
    try:
        return json.loads(deps.path_factory(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e


def _load_model(deps: CLIDependencies, path: str, model: type[ModelT]) -> ModelT:
    try:
        return model.model_validate(_load_json(deps, path))
    except ValidationError as e:
        raise click.ClickException(f"Invalid {model.__name__} in {path}: {e}") from e


@click.group()
def cli() -> None:
    """iacflow deployment engine CLI."""
    pass


@cli.command()
@click.argument("service_file")
def validate(service_file: str) -> None:
    """Validate the deployer script of a service template (JSON)."""
    deps = _get_cli_dependencies()
    ocl = _load_model(deps, service_file, ServiceDefinition)

    async def _validate() -> bool:
        service = deps.service_factory()
        try:
            await service.validate_service_deployment(ocl)
        except DeploymentError as e:
            click.echo(f"Validation failed for {ocl.name}: {e.message}", err=True)
            for detail in e.diagnostics:
                click.echo(f"  - {detail}", err=True)
            return False
        finally:
            await service.close()
        click.echo(f"Scripts of {ocl.name} are valid!")
        return True

    if not asyncio.run(_validate()):
        raise SystemExit(1)


@cli.command()
@click.argument("service_file")
@click.argument("request_file")
def plan(service_file: str, request_file: str) -> None:
    """Print the deploy plan of a service template for a deploy request (JSON)."""
    deps = _get_cli_dependencies()
    task = DeployTask(
        ocl=_load_model(deps, service_file, ServiceDefinition),
        deploy_request=_load_model(deps, request_file, DeployRequest),
    )

    async def _plan() -> None:
        service = deps.service_factory()
        try:
            click.echo(await service.get_deploy_plan_as_json(task))
        except DeploymentError as e:
            raise click.ClickException(e.message) from e
        finally:
            service.delete_task_workspace(task)
            await service.close()

    asyncio.run(_plan())


@cli.command()
@click.argument("task_id")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in DeployerKind]),
    default=DeployerKind.TERRAFORM.value,
    help="Deployer kind the task ran with",
)
def cleanup(task_id: str, kind: str) -> None:
    """Delete the local workspace of a task."""
    deps = _get_cli_dependencies()
    service = deps.service_factory()
    try:
        service.kind_manager.get_deployment(DeployerKind(kind)).delete_task_workspace(task_id)
    except DeploymentError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Workspace of task {task_id} removed")


if __name__ == "__main__":
    cli()
