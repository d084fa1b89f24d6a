"""
Tests for state document parsing.
"""

import json

import pytest

from iacflow.deployment.exceptions import DeploymentErrorKind, StateParseError
from iacflow.deployment.models import DeployResourceKind
from iacflow.deployment.state import StateExtractor, resource_kind_for
from tests.helpers.terraform import EMPTY_STATE, SAMPLE_STATE

pytestmark = pytest.mark.unit


@pytest.fixture
def extractor():
    return StateExtractor()


class TestExtractResources:
    def test_managed_resources_only(self, extractor):
        resources = extractor.extract_resources(SAMPLE_STATE)

        assert [r.group_type for r in resources] == ["huaweicloud_compute_instance", "random_id"]

    def test_vm_resource_record(self, extractor):
        vm = extractor.extract_resources(SAMPLE_STATE)[0]

        assert vm.kind == DeployResourceKind.VM
        assert vm.resource_id == "ecs-0001"
        assert vm.name == "ecs-tf-vm"
        assert vm.group_name == "ecs-tf"
        assert vm.properties["access_ip_v4"] == "192.168.0.10"

    def test_unmapped_type_is_unknown_and_named_after_block(self, extractor):
        random_id = extractor.extract_resources(SAMPLE_STATE)[1]

        assert random_id.kind == DeployResourceKind.UNKNOWN
        assert random_id.name == "new"
        assert random_id.resource_id == "qT9x1g"

    def test_one_record_per_instance(self, extractor):
        state = json.dumps(
            {
                "resources": [
                    {
                        "mode": "managed",
                        "type": "openstack_compute_instance_v2",
                        "name": "worker",
                        "instances": [
                            {"index_key": 0, "attributes": {"id": "a", "name": "worker-0"}},
                            {"index_key": 1, "attributes": {"id": "b", "name": "worker-1"}},
                        ],
                    }
                ]
            }
        )

        resources = extractor.extract_resources(state)

        assert [r.name for r in resources] == ["worker-0", "worker-1"]
        assert {r.kind for r in resources} == {DeployResourceKind.VM}

    def test_empty_state(self, extractor):
        assert extractor.extract_resources(EMPTY_STATE) == []
        assert extractor.extract_outputs(EMPTY_STATE) == {}

    def test_custom_mapping(self):
        extractor = StateExtractor({"random_id": DeployResourceKind.KEYPAIR})

        kinds = [r.kind for r in extractor.extract_resources(SAMPLE_STATE)]

        assert kinds == [DeployResourceKind.UNKNOWN, DeployResourceKind.KEYPAIR]


class TestExtractOutputs:
    def test_outputs_as_strings(self, extractor):
        assert extractor.extract_outputs(SAMPLE_STATE) == {
            "ecs_host": "192.168.0.10",
            "ports": "[80, 443]",
        }


class TestInvalidState:
    @pytest.mark.parametrize("state", ["not json", "[1, 2]", ""])
    def test_invalid_document_raises(self, extractor, state):
        with pytest.raises(StateParseError) as exc_info:
            extractor.extract_resources(state)

        assert exc_info.value.kind == DeploymentErrorKind.STATE_PARSE_FAILED

    @pytest.mark.parametrize(
        "state",
        [
            '{"resources": ["oops"]}',
            '{"resources": {"type": "huaweicloud_vpc"}}',
            '{"resources": [{"type": "huaweicloud_vpc", "instances": [1]}]}',
            '{"resources": [{"type": "huaweicloud_vpc", "instances": [{"attributes": "x"}]}]}',
        ],
    )
    def test_wrong_resource_shape_raises(self, extractor, state):
        with pytest.raises(StateParseError):
            extractor.extract_resources(state)

    @pytest.mark.parametrize("state", ['{"outputs": []}', '{"outputs": "host"}'])
    def test_wrong_outputs_shape_raises(self, extractor, state):
        with pytest.raises(StateParseError):
            extractor.extract_outputs(state)


def test_resource_kind_lookup():
    assert resource_kind_for("huaweicloud_vpc_eip") == DeployResourceKind.PUBLIC_IP
    assert resource_kind_for("openstack_networking_secgroup_v2") == (
        DeployResourceKind.SECURITY_GROUP
    )
    assert resource_kind_for("aws_instance") == DeployResourceKind.UNKNOWN
