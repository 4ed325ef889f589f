"""A minimal cloud provider that reads node addresses from annotations and labels."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable

from k8e.datadir import PROGRAM

logger = logging.getLogger(__name__)

INTERNAL_IP_KEY = PROGRAM + ".io/internal-ip"
EXTERNAL_IP_KEY = PROGRAM + ".io/external-ip"
HOSTNAME_KEY = PROGRAM + ".io/hostname"


class NotImplementedByProvider(Exception):
    """Raised for cloud-provider operations this provider does not offer."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation}: unimplemented")
        self.operation = operation


class NodeAddressType(str, enum.Enum):
    """Kinds of node address."""

    INTERNAL_IP = "InternalIP"
    EXTERNAL_IP = "ExternalIP"
    HOSTNAME = "Hostname"


@dataclass(frozen=True)
class NodeAddress:
    """One address of a node."""

    type: NodeAddressType
    address: str


@dataclass
class Node:
    """The parts of a cluster node the provider reads."""

    name: str
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


def _require_text(value: object, what: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{what} must be a string, not {type(value).__name__}")
    return value


class CloudProvider:
    """Answers instance queries from a synced view of the cluster's nodes."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] | None = None

    def set_nodes(self, nodes: Iterable[Node]) -> None:
        """Replace the known nodes; the provider counts as synced afterwards."""
        self._nodes = {node.name: node for node in nodes}

    def provider_name(self) -> str:
        """Return the provider's name."""
        return PROGRAM

    def _get_node(self, node_name: str) -> Node:
        if self._nodes is None:
            raise RuntimeError("Node informer has not synced yet")
        try:
            return self._nodes[node_name]
        except KeyError:
            raise LookupError(f"Failed to find node {node_name}: not found") from None

    @staticmethod
    def _unsupported(operation: str, argument: object) -> NotImplementedByProvider:
        logger.debug("Unsupported cloud provider call %s(%r)", operation, argument)
        return NotImplementedByProvider(operation)

    def current_node_name(self, hostname: str) -> str:
        """Return the node name for ``hostname``, which is the hostname itself."""
        return _require_text(hostname, "hostname")

    def instance_exists_by_provider_id(self, provider_id: str) -> bool:
        """Every instance is taken to exist; provider ids are not tracked."""
        _require_text(provider_id, "provider_id")
        logger.debug("Assuming instance %s exists", provider_id)
        return True

    def instance_id(self, node_name: str) -> str:
        """Return the instance id of a known node, which is its name."""
        self._get_node(node_name)
        return node_name

    def instance_type(self, node_name: str) -> str:
        """Return the instance type of a known node."""
        self.instance_id(node_name)
        return PROGRAM

    def instance_type_by_provider_id(self, provider_id: str) -> str:
        """Not offered by this provider."""
        raise self._unsupported("instance_type_by_provider_id", provider_id)

    def instance_shutdown_by_provider_id(self, provider_id: str) -> bool:
        """Not offered by this provider."""
        raise self._unsupported("instance_shutdown_by_provider_id", provider_id)

    def node_addresses(self, node_name: str) -> list[NodeAddress]:
        """Return addresses from annotations, falling back to labels.

        Annotations may list several comma separated addresses; labels hold one.
        """
        node = self._get_node(node_name)
        addresses: list[NodeAddress] = []

        internal = self._lookup(node, INTERNAL_IP_KEY, NodeAddressType.INTERNAL_IP, split=True)
        if not internal:
            logger.info("Couldn't find node internal ip annotation or label on node %s", node_name)
        addresses.extend(internal)

        addresses.extend(
            self._lookup(node, EXTERNAL_IP_KEY, NodeAddressType.EXTERNAL_IP, split=True)
        )

        hostname = self._lookup(node, HOSTNAME_KEY, NodeAddressType.HOSTNAME, split=False)
        if not hostname:
            logger.info("Couldn't find node hostname annotation or label on node %s", node_name)
        addresses.extend(hostname)
        return addresses

    @staticmethod
    def _lookup(node: Node, key: str, kind: NodeAddressType, split: bool) -> list[NodeAddress]:
        annotation = node.annotations.get(key, "")
        if annotation:
            values = annotation.split(",") if split else [annotation]
            return [NodeAddress(kind, value) for value in values]
        label = node.labels.get(key, "")
        if label:
            return [NodeAddress(kind, label)]
        return []

    def node_addresses_by_provider_id(self, provider_id: str) -> list[NodeAddress]:
        """Not offered by this provider."""
        raise self._unsupported("node_addresses_by_provider_id", provider_id)

    def add_ssh_key_to_all_instances(self, user: str, key_data: bytes) -> None:
        """Not offered by this provider."""
        raise self._unsupported("add_ssh_key_to_all_instances", user)