"""
Base class for host discovery backends.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List


def unique(values: Iterable[str]) -> List[str]:
    """Remove duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class HostDiscovery(ABC):
    """
    Resolves a dynamic list of hosts from an external directory.

    Discovery runs once, when jobs are built.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for identification."""

    @abstractmethod
    def discover(self) -> List[str]:
        """
        Discover hosts.

        Returns:
            Ordered list of host identifiers

        Raises:
            DiscoveryError: If the backend cannot be queried
        """
