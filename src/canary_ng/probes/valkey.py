"""
Valkey probe.

Works with Valkey and Redis servers, standalone, behind Sentinel (when
master_set is defined) or as a cluster (several hosts).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

import redis
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisClusterException
from redis.sentinel import Sentinel

from canary_ng.probes.base import Probe, split_host_port
from canary_ng.utils.errors import ConfigError, ProbeOperationError

DEFAULT_PORT = 6379


class ValkeyProbe(Probe):
    """Probe for Valkey and Redis."""

    name = "valkey"

    def __init__(self, config):
        super().__init__(config)
        self.require("key")
        self.client = None

        self.db = 0
        if config.database:
            try:
                self.db = int(config.database)
            except ValueError as e:
                raise ConfigError(f"valkey database must be an integer, got {config.database}") from e

        port = config.port or DEFAULT_PORT
        self.addresses: List[Tuple[str, int]] = [split_host_port(h, port) for h in self.hosts]

    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments shared by every client flavour."""
        options: Dict[str, Any] = {
            "socket_timeout": self.timeout,
            "socket_connect_timeout": self.timeout,
            "decode_responses": True,
        }
        if self.config.username:
            options["username"] = self.config.username
        if self.config.password:
            options["password"] = self.config.password
        if self.config.tls or self.config.skip_verify:
            options["ssl"] = True
            if self.config.skip_verify:
                options["ssl_cert_reqs"] = "none"
        return options

    def build_client(self):
        """
        Build the client matching the configuration.

        Returns:
            redis.Redis or redis.cluster.RedisCluster instance
        """
        if self.config.dsn:
            return redis.Redis.from_url(
                self.config.dsn,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
                decode_responses=True
            )

        options = self.client_options()

        if self.config.master_set:
            sentinel = Sentinel(
                self.addresses,
                socket_timeout=self.timeout,
                sentinel_kwargs={"socket_timeout": self.timeout}
            )
            return sentinel.master_for(self.config.master_set, db=self.db, **options)

        if len(self.addresses) > 1:
            nodes = [ClusterNode(host, port) for host, port in self.addresses]
            return RedisCluster(startup_nodes=nodes, **options)

        host, port = self.addresses[0] if self.addresses else ("localhost", DEFAULT_PORT)
        return redis.Redis(host=host, port=port, db=self.db, **options)

    def connect(self) -> None:
        self.logger.debug("connecting")
        self.reset()
        client = None
        try:
            client = self.build_client()
            client.ping()
        except (redis.RedisError, RedisClusterException) as e:
            if client is not None:
                client.close()
            raise ProbeOperationError("connect", e) from e
        self.client = client
        self.logger.debug("connected")

    def read(self) -> None:
        self.logger.debug("reading")
        try:
            result = self.client.get(self.config.key)
        except redis.RedisError as e:
            raise ProbeOperationError("read", e) from e

        if result is None:
            if self.create:
                self.write()
                return
            raise ProbeOperationError("read", "key does not exist")

        self.logger.debug(f"read result={result}")

    def write(self) -> None:
        self.logger.debug("writing")
        ts = datetime.now(timezone.utc).isoformat()
        try:
            self.client.set(self.config.key, ts)
        except redis.RedisError as e:
            raise ProbeOperationError("write", e) from e
        self.logger.debug(f"written ts={ts}")

    def disconnect(self) -> None:
        if self.client is None:
            return
        self.logger.debug("disconnecting")
        try:
            self.client.close()
        except redis.RedisError as e:
            raise ProbeOperationError("disconnect", e) from e
        finally:
            self.client = None
        self.logger.debug("disconnected")
