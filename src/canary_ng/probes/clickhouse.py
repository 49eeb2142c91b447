"""
ClickHouse probe.

Uses the native protocol. Additional hosts are passed as alternative hosts
to fail over on connect. When a cluster is configured, the canary table is
created as a replicated local table behind a distributed table.
"""

from datetime import datetime
from typing import Any, Dict
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from clickhouse_driver import Client
from clickhouse_driver.errors import Error as ClickhouseError
from clickhouse_driver.errors import ErrorCodes

from canary_ng.probes.base import Probe, split_host_port, with_port
from canary_ng.utils.errors import ProbeOperationError

DEFAULT_USERNAME = "default"
DEFAULT_DATABASE = "default"
TIMEOUT_OPTIONS = ("connect_timeout", "send_receive_timeout", "sync_request_timeout")

SELECT_QUERY = "SELECT formatDateTime(ts, '%Y-%m-%d %H:%i:%S%z') FROM {table}"
INSERT_QUERY = "INSERT INTO {table} (id, ts) VALUES"
CREATE_LOCAL_QUERY = (
    "CREATE TABLE IF NOT EXISTS {table} (id Int32, ts DateTime64(3)) "
    "ENGINE ReplacingMergeTree ORDER BY id PRIMARY KEY id"
)
CREATE_REPLICATED_QUERY = (
    "CREATE TABLE IF NOT EXISTS {table}_chunk ON CLUSTER '{cluster}' (id Int32, ts DateTime64(3)) "
    "ENGINE ReplicatedReplacingMergeTree ORDER BY id PRIMARY KEY id"
)
CREATE_DISTRIBUTED_QUERY = (
    "CREATE TABLE IF NOT EXISTS {table} ON CLUSTER '{cluster}' (id Int32, ts DateTime64(3)) "
    "ENGINE Distributed('{cluster}', '{database}', {table}_chunk, rand())"
)


def _is_unknown_table(error: Exception) -> bool:
    return getattr(error, "code", None) == ErrorCodes.UNKNOWN_TABLE


class ClickhouseProbe(Probe):
    """Probe for ClickHouse servers and clusters."""

    name = "clickhouse"

    def __init__(self, config):
        super().__init__(config)
        self.require("table")
        self.client = None
        self.database = config.database or DEFAULT_DATABASE

    def client_options(self) -> Dict[str, Any]:
        """
        Build clickhouse-driver Client arguments.

        Returns:
            Keyword arguments for clickhouse_driver.Client
        """
        options: Dict[str, Any] = {
            "user": self.config.username or DEFAULT_USERNAME,
            "password": self.config.password,
            "database": self.database,
            "connect_timeout": self.timeout,
            "send_receive_timeout": self.timeout,
            "sync_request_timeout": self.timeout,
        }

        hosts = with_port(self.hosts, self.config.port)
        if hosts:
            host, port = split_host_port(hosts[0], None)
            options["host"] = host
            if port:
                options["port"] = port
            if len(hosts) > 1:
                options["alt_hosts"] = ",".join(hosts[1:])
        else:
            options["host"] = "localhost"

        if self.config.secure:
            options["secure"] = True
            options["verify"] = not self.config.skip_verify

        return options

    def build_url(self) -> str:
        """
        Return the dsn with the probe timeout set on every timeout option.

        Timeouts already present in the dsn are replaced.
        """
        url = urlparse(self.config.dsn)
        params = [(k, v) for k, v in parse_qsl(url.query) if k not in TIMEOUT_OPTIONS]
        params.extend((option, str(self.timeout)) for option in TIMEOUT_OPTIONS)
        return urlunparse(url._replace(query=urlencode(params)))

    def build_client(self) -> Client:
        if self.config.dsn:
            self.logger.debug("parsing dsn")
            return Client.from_url(self.build_url())
        return Client(**self.client_options())

    def connect(self) -> None:
        self.logger.debug("opening connection")
        self.reset()
        client = self.build_client()
        try:
            self.logger.debug("pinging")
            client.execute("SELECT 1")
        except (ClickhouseError, OSError, EOFError) as e:
            client.disconnect()
            raise ProbeOperationError("connect", e) from e
        self.client = client
        self.logger.debug("connected")

    def read(self) -> None:
        self.logger.debug("reading")
        try:
            rows = self.client.execute(SELECT_QUERY.format(table=self.config.table))
        except ClickhouseError as e:
            if _is_unknown_table(e) and self.create:
                self.write()
                return
            raise ProbeOperationError("read", e) from e
        except (OSError, EOFError) as e:
            raise ProbeOperationError("read", e) from e

        if not rows:
            raise ProbeOperationError("read", "no rows in result set")
        self.logger.debug(f"read ts={rows[0][0]}")

    def write(self) -> None:
        self.logger.debug("writing")
        try:
            self._insert()
        except ClickhouseError as e:
            if not (_is_unknown_table(e) and self.create):
                raise ProbeOperationError("write", e) from e
            try:
                self._create_table()
                self._insert()
            except (ClickhouseError, OSError, EOFError) as create_error:
                raise ProbeOperationError("write", create_error) from create_error
        except (OSError, EOFError) as e:
            raise ProbeOperationError("write", e) from e
        self.logger.debug("written")

    def _insert(self) -> None:
        self.logger.debug("inserting")
        self.client.execute(INSERT_QUERY.format(table=self.config.table), [(1, datetime.now())])

    def _create_table(self) -> None:
        params = {
            "table": self.config.table,
            "cluster": self.config.cluster,
            "database": self.database,
        }
        if self.config.cluster:
            self.logger.debug("creating replicated table")
            self.client.execute(CREATE_REPLICATED_QUERY.format(**params))
            self.logger.debug("creating distributed table")
            self.client.execute(CREATE_DISTRIBUTED_QUERY.format(**params))
        else:
            self.logger.debug("creating local table")
            self.client.execute(CREATE_LOCAL_QUERY.format(**params))

    def disconnect(self) -> None:
        if self.client is None:
            return
        self.logger.debug("disconnecting")
        try:
            self.client.disconnect()
        except (ClickhouseError, OSError) as e:
            raise ProbeOperationError("disconnect", e) from e
        finally:
            self.client = None
        self.logger.debug("disconnected")
