"""
Base class for store probes.

A probe opens a connection to a data store and performs one
connect/read/write/disconnect cycle per measurement. Each operation raises
ProbeOperationError on failure and is bounded by the probe timeout.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from canary_ng.utils.config import JobConfig
from canary_ng.utils.errors import ConfigError, MultipleHostsUnsupportedError, ProbeOperationError

DEFAULT_TIMEOUT = 3  # seconds


def with_port(hosts: List[str], port: int) -> List[str]:
    """
    Append a port to hosts that do not define one.

    Args:
        hosts: Host list, entries may already contain ":port"
        port: Port to append (ignored when 0)

    Returns:
        New host list
    """
    if not port:
        return list(hosts)
    return [h if ":" in h else f"{h}:{port}" for h in hosts]


def split_host_port(address: str, default_port: int):
    """Split "host:port" into a (host, port) tuple."""
    host, sep, port = address.rpartition(":")
    if sep and port.isdigit():
        return host, int(port)
    return address, default_port


class Probe(ABC):
    """
    Abstract base class for store probes.

    Subclasses must implement:
    - connect(): Open the connection
    - read(): Read the canary record, creating it first when allowed
    - write(): Upsert the canary record
    - disconnect(): Close the connection
    """

    #: Store type name, used in logs and as the job "type" value
    name = ""

    def __init__(self, config: JobConfig):
        """
        Initialize common probe settings.

        Args:
            config: Job configuration, hosts already resolved
        """
        self.config = config
        self.hosts = list(config.hosts)
        self.timeout = config.timeout or DEFAULT_TIMEOUT
        self.create = config.create
        self.logger = logging.LoggerAdapter(
            logging.getLogger(type(self).__module__),
            {"driver": self.name}
        )

    def require(self, *options: str) -> None:
        """
        Ensure mandatory options are set.

        Raises:
            ConfigError: If an option is empty
        """
        for option in options:
            if not getattr(self.config, option):
                raise ConfigError(f"{option} is required for {self.name}")

    def single_host(self) -> str:
        """
        Return the only configured host.

        Raises:
            MultipleHostsUnsupportedError: If several hosts are configured
        """
        if len(self.hosts) > 1:
            raise MultipleHostsUnsupportedError(self.name, self.hosts)
        if self.hosts:
            return self.hosts[0]
        return self.config.host

    def reset(self) -> None:
        """
        Close a connection left open by an aborted cycle.

        Failed reads and writes end the cycle without disconnecting, so every
        connect first releases the previous connection. Close errors are
        only logged.
        """
        try:
            self.disconnect()
        except ProbeOperationError as e:
            self.logger.debug(f"ignoring error closing previous connection: {e}")

    @abstractmethod
    def connect(self) -> None:
        """Open a connection to the store."""

    @abstractmethod
    def read(self) -> None:
        """Read the canary record."""

    @abstractmethod
    def write(self) -> None:
        """Write the canary record."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection."""
