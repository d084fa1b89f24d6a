"""
Tests for the deployment webhook router.
"""

import time
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from iacflow.deployment.callbacks import CallbackCorrelator
from iacflow.deployment.manager import DeployerKindManager, DeployService
from iacflow.deployment.models import DeployOperation
from iacflow.main import create_app
from iacflow.settings import Settings
from tests.helpers.terraform import SAMPLE_STATE

pytestmark = pytest.mark.integration

PREFIX = "/api/v1/deployments"


@pytest.fixture
def service():
    return DeployService(DeployerKindManager(), CallbackCorrelator())


@pytest.fixture
def client(service):
    app = create_app(Settings(), deploy_service=service)
    return TestClient(app)


@pytest.fixture
def task_id():
    return str(uuid.uuid4())


class TestDeployWebhook:
    def test_success_callback_completes_task(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DEPLOY)

        response = client.post(
            f"{PREFIX}/webhook/deploy/{task_id}",
            json={"commandSuccessful": True, "terraformState": SAMPLE_STATE},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "task_id": task_id,
            "operation": "deploy",
            "applied": True,
            "status": "deploy_success",
        }
        assert service.get_result(task_id).state == SAMPLE_STATE

    def test_duplicate_callback_acknowledged_but_ignored(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DEPLOY)
        client.post(
            f"{PREFIX}/webhook/deploy/{task_id}",
            json={"commandSuccessful": True, "terraformState": SAMPLE_STATE},
        )

        response = client.post(
            f"{PREFIX}/webhook/deploy/{task_id}",
            json={"commandSuccessful": False, "commandStdError": "Error: late"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["applied"] is False
        assert service.get_result(task_id).status.value == "deploy_success"

    def test_unknown_task_acknowledged(self, client, service, task_id):
        response = client.post(
            f"{PREFIX}/webhook/deploy/{task_id}", json={"commandSuccessful": True}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["applied"] is False
        assert service.get_result(task_id) is None

    def test_malformed_body_rejected(self, client, task_id):
        response = client.post(f"{PREFIX}/webhook/deploy/{task_id}", json={"state": "x"})

        assert response.status_code == 422


class TestDestroyWebhook:
    def test_failure_callback(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DESTROY)

        response = client.post(
            f"{PREFIX}/webhook/destroy/{task_id}",
            json={"commandSuccessful": False, "commandStdError": "Error: resource in use"},
        )

        assert response.json()["status"] == "destroy_failed"
        assert service.get_result(task_id).message == "Error: resource in use"

    def test_destroy_callback_does_not_touch_deploy(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DEPLOY)

        response = client.post(
            f"{PREFIX}/webhook/destroy/{task_id}", json={"commandSuccessful": True}
        )

        assert response.json()["applied"] is False
        assert service.get_result(task_id).status.value == "deploying"


class TestTaskResult:
    def test_get_pending_result(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DEPLOY)

        response = client.get(f"{PREFIX}/tasks/{task_id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == task_id
        assert data["status"] == "deploying"

    def test_get_result_by_operation(self, client, service, task_id):
        service.correlator.register(task_id, DeployOperation.DEPLOY)

        response = client.get(f"{PREFIX}/tasks/{task_id}", params={"operation": "destroy"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unknown_task_not_found(self, client, task_id):
        response = client.get(f"{PREFIX}/tasks/{task_id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert task_id in response.json()["detail"]


class TestLifespan:
    def test_shutdown_closes_deploy_service(self, service):
        service.close = AsyncMock()
        app = create_app(Settings(), deploy_service=service)

        with TestClient(app) as client:
            client.get(f"{PREFIX}/tasks/{uuid.uuid4()}")
            service.close.assert_not_awaited()

        service.close.assert_awaited_once()

    def test_housekeeping_runs_while_serving(self, service):
        service.run_housekeeping = MagicMock()
        settings = Settings(deployment={"housekeeping_interval_seconds": 0.01})
        app = create_app(settings, deploy_service=service)

        with TestClient(app):
            deadline = time.monotonic() + 2
            while not service.run_housekeeping.called and time.monotonic() < deadline:
                time.sleep(0.01)

        assert service.run_housekeeping.called

    def test_housekeeping_disabled(self, service):
        service.run_housekeeping = MagicMock()
        settings = Settings(deployment={"housekeeping_interval_seconds": None})

        with TestClient(create_app(settings, deploy_service=service)):
            time.sleep(0.05)

        service.run_housekeeping.assert_not_called()
