"""Managed datastore drivers and the rules for choosing one."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable


class Driver(ABC):
    """A datastore whose lifecycle the server controls, such as embedded etcd."""

    @abstractmethod
    def endpoint_name(self) -> str:
        """Return the endpoint scheme this driver serves."""

    @abstractmethod
    def is_initialized(self, config: Any) -> bool:
        """Return True if a database for this driver already exists on disk."""

    @abstractmethod
    def register(self, config: Any, handler: Any) -> Any:
        """Add the driver's request handlers and return the combined handler."""

    @abstractmethod
    def reset(self, rebootstrap: Callable[[], None]) -> None:
        """Reset the cluster to a single member, calling ``rebootstrap`` as needed."""

    @abstractmethod
    def start(self, client_access_info: Any) -> None:
        """Start the datastore."""

    @abstractmethod
    def test(self) -> None:
        """Raise if the datastore is not reachable."""

    @abstractmethod
    def restore(self) -> None:
        """Restore the datastore from a snapshot."""

    @abstractmethod
    def snapshot(self, config: Any) -> None:
        """Take a snapshot of the datastore."""

    @abstractmethod
    def reconcile_snapshot_data(self) -> None:
        """Record the existing snapshots for the cluster."""

    @abstractmethod
    def get_members_client_urls(self) -> list[str]:
        """Return the client URLs of all cluster members."""

    @abstractmethod
    def remove_self(self) -> None:
        """Remove this node from the cluster membership."""


class DriverRegistry:
    """Registered managed drivers, in registration order."""

    def __init__(self, default_driver: str = "") -> None:
        self.default_driver = default_driver
        self._drivers: list[Driver] = []

    def register(self, driver: Driver) -> None:
        """Add ``driver`` to the registry."""
        self._drivers.append(driver)

    def registered(self) -> list[Driver]:
        """Return the registered drivers."""
        return list(self._drivers)

    def default(self) -> str:
        """Return the default endpoint name; the sole driver's if none is set."""
        if not self.default_driver and len(self._drivers) == 1:
            return self._drivers[0].endpoint_name()
        return self.default_driver

    def select(
        self,
        config: Any,
        endpoint: str,
        cluster_init: bool,
        token: str,
        join_url: str,
    ) -> Driver | None:
        """Choose the managed driver for a server, or None.

        A driver with a database already on disk wins; next one whose name
        matches the endpoint's scheme; finally, when no endpoint is set and
        the server initialises or joins a cluster, the default driver.
        """
        for driver in self._drivers:
            if driver.is_initialized(config):
                return driver

        endpoint_type = endpoint.split(":", 1)[0]
        for driver in self._drivers:
            if driver.endpoint_name() == endpoint_type:
                return driver

        if not endpoint and (cluster_init or (token and join_url)):
            default = self.default()
            for driver in self._drivers:
                if driver.endpoint_name() == default:
                    return driver

        return None