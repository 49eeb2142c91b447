"""
Cassandra probe.

Also targets ScyllaDB. The keyspace is taken from the database option and
must exist; only the canary table is created on demand.
"""

from cassandra import DriverException, InvalidRequest
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, NoHostAvailable

from canary_ng.probes.base import Probe, split_host_port
from canary_ng.utils.errors import ConfigError, ProbeOperationError

DEFAULT_PORT = 9042
TABLE_NOT_FOUND_MESSAGE = "unconfigured table"

CONNECT_ERRORS = (DriverException, NoHostAvailable, OSError)


def _is_unknown_table(error: Exception) -> bool:
    return isinstance(error, InvalidRequest) and TABLE_NOT_FOUND_MESSAGE in str(error).lower()


class CassandraProbe(Probe):
    """Probe for Cassandra and ScyllaDB clusters."""

    name = "cassandra"

    def __init__(self, config):
        super().__init__(config)
        self.require("database", "table")
        if config.dsn:
            raise ConfigError("dsn is not supported for cassandra, use hosts")
        if not self.hosts:
            raise ConfigError("hosts are required for cassandra")

        addresses = [split_host_port(h, config.port or DEFAULT_PORT) for h in self.hosts]
        self.contact_points = [host for host, _ in addresses]
        self.port = addresses[0][1]
        self.cluster = None
        self.session = None

    def build_cluster(self) -> Cluster:
        auth_provider = None
        if self.config.username:
            auth_provider = PlainTextAuthProvider(
                username=self.config.username,
                password=self.config.password
            )
        return Cluster(
            self.contact_points,
            port=self.port,
            auth_provider=auth_provider,
            connect_timeout=self.timeout,
            control_connection_timeout=self.timeout
        )

    def connect(self) -> None:
        self.logger.debug("connecting")
        self.reset()
        cluster = self.build_cluster()
        try:
            session = cluster.connect(self.config.database)
        except CONNECT_ERRORS as e:
            cluster.shutdown()
            raise ProbeOperationError("connect", e) from e
        session.default_timeout = self.timeout
        self.cluster = cluster
        self.session = session
        self.logger.debug("connected")

    def read(self) -> None:
        self.logger.debug("reading")
        try:
            row = self.session.execute(f"SELECT ts FROM {self.config.table} WHERE id = 1").one()
        except CONNECT_ERRORS as e:
            if _is_unknown_table(e) and self.create:
                self.write()
                return
            raise ProbeOperationError("read", e) from e

        if row is None:
            raise ProbeOperationError("read", "no rows in result set")
        self.logger.debug(f"read ts={row.ts}")

    def write(self) -> None:
        self.logger.debug("writing")
        try:
            self._insert()
        except CONNECT_ERRORS as e:
            if not (_is_unknown_table(e) and self.create):
                raise ProbeOperationError("write", e) from e
            try:
                self._create_table()
                self._insert()
            except CONNECT_ERRORS as create_error:
                raise ProbeOperationError("write", create_error) from create_error
        self.logger.debug("written")

    def _insert(self) -> None:
        self.session.execute(
            f"INSERT INTO {self.config.table} (id, ts) VALUES (1, toTimestamp(now()))"
        )

    def _create_table(self) -> None:
        self.logger.debug("creating table")
        self.session.execute(
            f"CREATE TABLE IF NOT EXISTS {self.config.table} (id int PRIMARY KEY, ts timestamp)"
        )
        self.logger.debug("created")

    def disconnect(self) -> None:
        if self.cluster is None:
            return
        self.logger.debug("disconnecting")
        try:
            self.cluster.shutdown()
        except CONNECT_ERRORS as e:
            raise ProbeOperationError("disconnect", e) from e
        finally:
            self.cluster = None
            self.session = None
        self.logger.debug("disconnected")
