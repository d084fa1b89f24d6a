"""
terraform-boot client.

Provides a client for the remote Terraform execution service. Deploy and
destroy are accepted asynchronously and reported back through a webhook,
validate and plan answer synchronously.
"""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from iacflow.deployment.exceptions import TerraformBootRequestFailedError
from iacflow.deployment.remote.models import (
    TerraformAsyncDeployFromScriptsRequest,
    TerraformAsyncDestroyFromScriptsRequest,
    TerraformDeployWithScriptsRequest,
    TerraformPlan,
    TerraformPlanWithScriptsRequest,
    TerraformValidationResult,
)

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TerraformBootClient:
    """terraform-boot API client."""

    DEPLOY_ASYNC_PATH = "/terraform-boot/deploy/async/scripts"
    DESTROY_ASYNC_PATH = "/terraform-boot/destroy/async/scripts"
    VALIDATE_PATH = "/terraform-boot/validate/scripts"
    PLAN_PATH = "/terraform-boot/plan/scripts"
    HEALTH_PATH = "/terraform-boot/health"

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        verify_ssl: bool = True,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize terraform-boot client.

        Args:
            base_url: Service URL (e.g., http://terraform-boot:9090)
            token: Bearer token, if the service requires one
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                verify=self.verify_ssl,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )

        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make an HTTP request to terraform-boot.

        Args:
            method: HTTP method
            path: API path
            data: JSON request body

        Returns:
            Response data as dictionary

        Raises:
            TerraformBootRequestFailedError: On transport failure or error response
        """
        client = await self._get_client()

        try:
            response = await client.request(method=method, url=path, json=data)
        except httpx.TimeoutException as e:
            logger.error("terraform_boot.request.timeout", path=path, error=str(e))
            raise TerraformBootRequestFailedError(f"Request timeout: {path}") from e
        except httpx.RequestError as e:
            logger.error("terraform_boot.request.error", path=path, error=str(e))
            raise TerraformBootRequestFailedError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            error_detail = response.text
            try:
                error_json = response.json()
            except ValueError:
                error_json = None
            if isinstance(error_json, dict):
                details = error_json.get("details") or error_json.get("detail")
                if isinstance(details, list):
                    error_detail = "; ".join(str(d) for d in details)
                elif details:
                    error_detail = str(details)

            logger.error(
                "terraform_boot.request.rejected",
                path=path,
                status_code=response.status_code,
                detail=error_detail,
            )
            raise TerraformBootRequestFailedError(
                f"terraform-boot API error: {error_detail}",
                status_code=response.status_code,
                diagnostics=[error_detail] if error_detail else None,
            )

        if response.status_code in (202, 204) or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise TerraformBootRequestFailedError(
                f"Invalid JSON response from {path}",
                status_code=response.status_code,
                diagnostics=[response.text],
            ) from e

    @staticmethod
    def _parse(model: type[ModelT], response: dict[str, Any], path: str) -> ModelT:
        try:
            return model.model_validate(response)
        except ValidationError as e:
            raise TerraformBootRequestFailedError(
                f"Unexpected response from {path}", diagnostics=[str(e)]
            ) from e

    async def health_check(self) -> bool:
        """Check if terraform-boot is reachable."""
        try:
            response = await self._request("GET", self.HEALTH_PATH)
        except TerraformBootRequestFailedError as e:
            logger.warning("terraform_boot.health_check.failed", error=e.message)
            return False
        return response.get("healthStatus", "OK") == "OK"

    async def async_deploy_with_scripts(
        self, request: TerraformAsyncDeployFromScriptsRequest
    ) -> None:
        await self._request(
            "POST", self.DEPLOY_ASYNC_PATH, data=request.model_dump(mode="json", by_alias=True)
        )
        logger.info(
            "terraform_boot.deploy.submitted",
            request_id=str(request.request_id),
            webhook=request.webhook_config.url,
        )

    async def async_destroy_with_scripts(
        self, request: TerraformAsyncDestroyFromScriptsRequest
    ) -> None:
        await self._request(
            "DELETE", self.DESTROY_ASYNC_PATH, data=request.model_dump(mode="json", by_alias=True)
        )
        logger.info(
            "terraform_boot.destroy.submitted",
            request_id=str(request.request_id),
            webhook=request.webhook_config.url,
        )

    async def validate_with_scripts(
        self, request: TerraformDeployWithScriptsRequest
    ) -> TerraformValidationResult:
        response = await self._request(
            "POST", self.VALIDATE_PATH, data=request.model_dump(mode="json", by_alias=True)
        )
        return self._parse(TerraformValidationResult, response, self.VALIDATE_PATH)

    async def plan_with_scripts(self, request: TerraformPlanWithScriptsRequest) -> TerraformPlan:
        response = await self._request(
            "POST", self.PLAN_PATH, data=request.model_dump(mode="json", by_alias=True)
        )
        return self._parse(TerraformPlan, response, self.PLAN_PATH)
