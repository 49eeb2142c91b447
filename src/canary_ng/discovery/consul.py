"""
Consul host discovery.

Lists nodes from the Consul catalog (/v1/catalog/nodes), optionally
filtered by node metadata. Returns node addresses, or the values of the
requested metadata fields when return_meta or return_metas is set.

Configured agents are queried in turn until one answers.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from canary_ng.discovery.base import HostDiscovery, unique
from canary_ng.utils.config import DiscoveryConfig
from canary_ng.utils.errors import DiscoveryError

logger = logging.getLogger(__name__)

CONSUL_ADDRESS = "127.0.0.1:8500"
DEFAULT_SCHEME = "http"
DEFAULT_TIMEOUT = 10  # seconds


class ConsulDiscovery(HostDiscovery):
    """
    Host discovery backed by the Consul catalog.

    Attributes:
        addresses: Consul agent addresses (host:port)
        scheme: http or https
        token: ACL token (optional)
        datacenter: Datacenter to query (optional)
        verify: Whether to verify TLS certificates
        node_meta: Node metadata filter
        return_metas: Metadata fields returned instead of node addresses
    """

    def __init__(
        self,
        addresses: Optional[List[str]] = None,
        scheme: str = DEFAULT_SCHEME,
        token: str = "",
        datacenter: str = "",
        skip_verify: bool = False,
        node_meta: Optional[Dict[str, str]] = None,
        return_meta: str = "",
        return_metas: Optional[List[str]] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.addresses = list(addresses) if addresses else [CONSUL_ADDRESS]
        self.scheme = scheme or DEFAULT_SCHEME
        self.token = token
        self.datacenter = datacenter
        self.verify = not skip_verify
        self.node_meta = dict(node_meta or {})
        self.timeout = timeout

        if return_metas:
            self.return_metas = list(return_metas)
        elif return_meta:
            self.return_metas = [return_meta]
        else:
            self.return_metas = []

    @classmethod
    def from_config(cls, config: DiscoveryConfig) -> "ConsulDiscovery":
        return cls(
            addresses=config.addresses,
            scheme=config.scheme,
            token=config.token,
            datacenter=config.datacenter,
            skip_verify=config.skip_verify,
            node_meta=config.node_meta,
            return_meta=config.return_meta,
            return_metas=config.return_metas,
        )

    @property
    def name(self) -> str:
        return "consul"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["X-Consul-Token"] = self.token
        return headers

    def _params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.datacenter:
            params["dc"] = self.datacenter
        if self.node_meta:
            params["node-meta"] = [f"{k}:{v}" for k, v in sorted(self.node_meta.items())]
        return params

    def _get_catalog_nodes(self, address: str) -> List[Dict[str, Any]]:
        """
        Query the catalog of one Consul agent.

        Args:
            address: Agent address (host:port)

        Returns:
            List of catalog node entries
        """
        url = f"{self.scheme}://{address}/v1/catalog/nodes"
        response = requests.get(
            url,
            params=self._params(),
            headers=self._headers(),
            timeout=self.timeout,
            verify=self.verify
        )
        response.raise_for_status()
        return response.json()

    def discover(self) -> List[str]:
        """
        Discover hosts from the first reachable Consul agent.

        Returns:
            Node addresses, or distinct metadata values in first-seen order

        Raises:
            DiscoveryError: If every agent fails
        """
        nodes = None
        for address in self.addresses:
            try:
                nodes = self._get_catalog_nodes(address)
                break
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"could not query consul catalog on {address}: {e}")

        if nodes is None:
            raise DiscoveryError("all consul clients failed")

        if nodes:
            logger.debug(f"nodes discovered: {[n.get('Node') for n in nodes]}")

        if self.return_metas:
            values = []
            for node in nodes:
                meta = node.get("Meta") or {}
                for field in self.return_metas:
                    if field in meta:
                        values.append(meta[field])
            hosts = unique(values)
        else:
            hosts = [node["Address"] for node in nodes if node.get("Address")]

        if hosts:
            logger.debug(f"hosts discovered: {hosts}")
        return hosts
