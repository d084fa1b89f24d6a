"""
Child process wrapper around the terraform/tofu binary.

One executor is bound to one workspace directory. Commands run with the
workspace as working directory and the task environment merged over the
process environment.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from iacflow.deployment.exceptions import TerraformExecutorError
from iacflow.deployment.models import (
    STATE_FILE_NAME,
    ValidateDiagnostics,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

PLAN_FILE_NAME = "tfplan"
ERROR_MARKER = "Error:"


@dataclass
class CommandResult:
    """Captured outcome of one child process."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def successful(self) -> bool:
        return self.returncode == 0 and ERROR_MARKER not in self.stderr

    def diagnostics(self) -> list[str]:
        lines = [line.strip() for line in (self.stderr or self.stdout).splitlines()]
        return [line for line in lines if line]

    def summary(self) -> str:
        details = self.diagnostics()
        return "\n".join(details) if details else f"exit code {self.returncode}"


@dataclass
class TerraformExecutor:
    """Runs IaC commands inside one workspace."""

    binary: str
    workspace: Path
    env: dict[str, str] = field(default_factory=dict)
    var_file: str | None = None
    log_level: str | None = None

    def _process_env(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.env)
        env["TF_IN_AUTOMATION"] = "1"
        env["TF_INPUT"] = "0"
        if self.log_level:
            env["TF_LOG"] = self.log_level
        return env

    def _var_file_args(self) -> list[str]:
        return [f"-var-file={self.var_file}"] if self.var_file else []

    async def run(self, *args: str) -> CommandResult:
        """
        Run one command and wait for it to exit.

        Raises:
            TerraformExecutorError: If the binary cannot be started
        """
        command = [self.binary, *args]
        logger.debug("executor.command.start", command=" ".join(command), cwd=str(self.workspace))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.workspace),
                env=self._process_env(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TerraformExecutorError(
                f"Failed to start {self.binary}: {e}",
                context={"command": command},
            ) from e

        stdout, stderr = await process.communicate()
        result = CommandResult(
            command=command,
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        logger.debug(
            "executor.command.finished",
            command=" ".join(command),
            returncode=result.returncode,
        )
        return result

    async def _run_checked(self, *args: str) -> CommandResult:
        result = await self.run(*args)
        if not result.successful:
            raise TerraformExecutorError(
                f"{self.binary} {args[0]} failed: {result.summary()}",
                diagnostics=result.diagnostics(),
                context={"command": result.command, "returncode": result.returncode},
            )
        return result

    async def init(self, backend: bool = True) -> CommandResult:
        args = ["init", "-no-color", "-input=false"]
        if not backend:
            args.append("-backend=false")
        return await self._run_checked(*args)

    async def apply(self) -> CommandResult:
        return await self._run_checked(
            "apply", "-auto-approve", "-input=false", "-no-color", *self._var_file_args()
        )

    async def destroy(self) -> CommandResult:
        return await self._run_checked(
            "destroy", "-auto-approve", "-input=false", "-no-color", *self._var_file_args()
        )

    async def plan_as_json(self) -> str:
        await self._run_checked(
            "plan", "-input=false", "-no-color", f"-out={PLAN_FILE_NAME}", *self._var_file_args()
        )
        result = await self._run_checked("show", "-json", "-no-color", PLAN_FILE_NAME)
        return result.stdout

    async def validate(self) -> ValidationResult:
        """
        Run `validate -json`.

        The command exits non-zero for invalid scripts, the JSON report on
        stdout is authoritative.

        Raises:
            TerraformExecutorError: If no JSON report was produced
        """
        result = await self.run("validate", "-json", "-no-color")
        try:
            report = json.loads(result.stdout)
        except ValueError as e:
            raise TerraformExecutorError(
                f"{self.binary} validate produced no report: {result.summary()}",
                diagnostics=result.diagnostics(),
            ) from e

        return ValidationResult(
            valid=bool(report.get("valid", False)),
            diagnostics=[
                ValidateDiagnostics(detail=d.get("detail") or d.get("summary", ""))
                for d in report.get("diagnostics", [])
                if d.get("severity", "error") == "error"
            ],
        )

    def state_path(self) -> Path:
        return self.workspace / STATE_FILE_NAME

    def read_state(self) -> str | None:
        path = self.state_path()
        if not path.is_file():
            return None
        content = path.read_text(encoding="utf-8")
        return content if content.strip() else None
