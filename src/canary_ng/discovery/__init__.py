"""
Host Discovery for canary-ng

Resolves the hosts of a job from a service catalog at startup.

Usage:
    from canary_ng.discovery import discover_hosts

    hosts = discover_hosts(job_config.hosts_discovery)
"""

from typing import Callable, Dict, List

from canary_ng.discovery.base import HostDiscovery
from canary_ng.discovery.consul import ConsulDiscovery
from canary_ng.utils.config import DiscoveryConfig
from canary_ng.utils.errors import UnsupportedDiscoveryTypeError

DISCOVERY_TYPES: Dict[str, Callable[[DiscoveryConfig], HostDiscovery]] = {
    "consul": ConsulDiscovery.from_config,
}


def create_discovery(config: DiscoveryConfig) -> HostDiscovery:
    """
    Instantiate the discovery backend matching the configured type.

    Raises:
        UnsupportedDiscoveryTypeError: If the type is unknown
    """
    factory = DISCOVERY_TYPES.get(config.type)
    if factory is None:
        raise UnsupportedDiscoveryTypeError(config.type)
    return factory(config)


def discover_hosts(config: DiscoveryConfig) -> List[str]:
    """
    Discover hosts with the configured backend.

    Args:
        config: Discovery configuration

    Returns:
        Hosts returned by the backend

    Raises:
        UnsupportedDiscoveryTypeError: If the type is unknown
        DiscoveryError: If the backend fails
    """
    return create_discovery(config).discover()


__all__ = [
    "DISCOVERY_TYPES",
    "ConsulDiscovery",
    "HostDiscovery",
    "create_discovery",
    "discover_hosts",
]
