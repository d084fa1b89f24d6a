"""
Terraform state parsing.

Turns a state document into DeployResource records and public outputs.
The document is treated as opaque except for the resource type, which is
mapped to a DeployResourceKind through a fixed table.
"""

import json
from typing import Any

import structlog

from iacflow.deployment.exceptions import StateParseError
from iacflow.deployment.models import DeployResource, DeployResourceKind

logger = structlog.get_logger(__name__)

TF_RESOURCE_KIND_MAPPING: dict[str, DeployResourceKind] = {
    # Huawei Cloud / FlexibleEngine
    "huaweicloud_compute_instance": DeployResourceKind.VM,
    "huaweicloud_cce_cluster": DeployResourceKind.CONTAINER,
    "huaweicloud_vpc": DeployResourceKind.VPC,
    "huaweicloud_vpc_subnet": DeployResourceKind.SUBNET,
    "huaweicloud_vpc_eip": DeployResourceKind.PUBLIC_IP,
    "huaweicloud_evs_volume": DeployResourceKind.VOLUME,
    "huaweicloud_networking_secgroup": DeployResourceKind.SECURITY_GROUP,
    "huaweicloud_networking_secgroup_rule": DeployResourceKind.SECURITY_GROUP_RULE,
    "huaweicloud_kps_keypair": DeployResourceKind.KEYPAIR,
    "flexibleengine_compute_instance_v2": DeployResourceKind.VM,
    "flexibleengine_vpc_v1": DeployResourceKind.VPC,
    "flexibleengine_vpc_subnet_v1": DeployResourceKind.SUBNET,
    "flexibleengine_vpc_eip": DeployResourceKind.PUBLIC_IP,
    "flexibleengine_blockstorage_volume_v2": DeployResourceKind.VOLUME,
    # OpenStack / SCS
    "openstack_compute_instance_v2": DeployResourceKind.VM,
    "openstack_networking_network_v2": DeployResourceKind.VPC,
    "openstack_networking_subnet_v2": DeployResourceKind.SUBNET,
    "openstack_networking_floatingip_v2": DeployResourceKind.PUBLIC_IP,
    "openstack_blockstorage_volume_v3": DeployResourceKind.VOLUME,
    "openstack_networking_secgroup_v2": DeployResourceKind.SECURITY_GROUP,
    "openstack_networking_secgroup_rule_v2": DeployResourceKind.SECURITY_GROUP_RULE,
    "openstack_compute_keypair_v2": DeployResourceKind.KEYPAIR,
}


def resource_kind_for(tf_type: str) -> DeployResourceKind:
    return TF_RESOURCE_KIND_MAPPING.get(tf_type, DeployResourceKind.UNKNOWN)


class StateExtractor:
    """Parses a Terraform/OpenTofu state document."""

    def __init__(self, kind_mapping: dict[str, DeployResourceKind] | None = None) -> None:
        self.kind_mapping = kind_mapping if kind_mapping is not None else TF_RESOURCE_KIND_MAPPING

    @staticmethod
    def load(state: str) -> dict[str, Any]:
        """
        Decode a state document.

        Raises:
            StateParseError: If the document is not a JSON object
        """
        try:
            document = json.loads(state)
        except (TypeError, ValueError) as e:
            raise StateParseError(f"Invalid state document: {e}") from e
        if not isinstance(document, dict):
            raise StateParseError("Invalid state document: expected a JSON object")
        return document

    def extract_resources(self, state: str) -> list[DeployResource]:
        """
        Managed resource instances of a state document; data sources are skipped.

        Raises:
            StateParseError: If the document or one of its blocks has the wrong shape
        """
        document = self.load(state)
        resources: list[DeployResource] = []
        for block in _as_list(document.get("resources"), "resources"):
            block = _as_dict(block, "resource block")
            if block.get("mode", "managed") != "managed":
                continue
            tf_type = str(block.get("type") or "")
            kind = self.kind_mapping.get(tf_type, DeployResourceKind.UNKNOWN)
            for instance in _as_list(block.get("instances"), "instances"):
                instance = _as_dict(instance, "resource instance")
                attributes = dict(_as_dict(instance.get("attributes"), "attributes"))
                resource_id = attributes.get("id")
                resources.append(
                    DeployResource(
                        resource_id=str(resource_id) if resource_id is not None else None,
                        name=str(attributes.get("name") or block.get("name", tf_type)),
                        kind=kind,
                        group_type=tf_type,
                        group_name=block.get("name"),
                        properties=attributes,
                    )
                )
        logger.debug("state.resources_extracted", count=len(resources))
        return resources

    def extract_outputs(self, state: str) -> dict[str, str]:
        """Output values as strings, nested values JSON encoded."""
        outputs: dict[str, str] = {}
        for name, output in _as_dict(self.load(state).get("outputs"), "outputs").items():
            value = output.get("value") if isinstance(output, dict) else output
            outputs[name] = value if isinstance(value, str) else json.dumps(value)
        return outputs


def _as_list(value: Any, field: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise StateParseError(f"Invalid state document: {field} must be a list")
    return value


def _as_dict(value: Any, field: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise StateParseError(f"Invalid state document: {field} must be an object")
    return value
