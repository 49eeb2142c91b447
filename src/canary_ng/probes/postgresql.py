"""
PostgreSQL probe.

Upserts a single timestamp row into the canary table and reads it back.
Connection strings follow the libpq URI format, several hosts being
joined with commas.
"""

from urllib.parse import quote, urlencode

import psycopg2
from psycopg2 import errors, sql

from canary_ng.probes.base import Probe, with_port
from canary_ng.utils.errors import ProbeOperationError

SELECT_QUERY = "SELECT to_char(ts, 'YYYY-MM-DD HH24:MI:SSOF') FROM {table} WHERE id = 1"
INSERT_QUERY = "INSERT INTO {table} (id, ts) VALUES (1, now()) ON CONFLICT (id) DO UPDATE SET ts = now()"
CREATE_QUERY = "CREATE TABLE {table} (id smallint primary key, ts timestamp with time zone)"


class PostgresqlProbe(Probe):
    """Probe for PostgreSQL servers."""

    name = "postgresql"

    def __init__(self, config):
        super().__init__(config)
        self.require("table")
        self.conn = None
        self.table = sql.Identifier(*self.config.table.split("."))
        self.dsn = self.build_dsn()

    def build_dsn(self) -> str:
        """
        Build a libpq connection URI.

        See https://www.postgresql.org/docs/current/libpq-connect.html#LIBPQ-CONNSTRING-URIS

        Returns:
            The configured dsn, or a URI composed from hosts and credentials
        """
        if self.config.dsn:
            return self.config.dsn

        uri = "postgresql://"

        if self.config.username:
            uri += quote(self.config.username, safe="")
            if self.config.password:
                uri += ":" + quote(self.config.password, safe="")
            uri += "@"

        uri += ",".join(with_port(self.hosts, self.config.port))

        if self.config.database:
            uri += f"/{self.config.database}"

        if self.config.sslmode:
            uri += "?" + urlencode({"sslmode": self.config.sslmode})

        return uri

    def _query(self, query: str) -> sql.Composed:
        return sql.SQL(query).format(table=self.table)

    def connect(self) -> None:
        self.logger.debug("connecting")
        self.reset()
        try:
            conn = psycopg2.connect(
                self.dsn,
                connect_timeout=self.timeout,
                options=f"-c statement_timeout={self.timeout * 1000}"
            )
        except psycopg2.Error as e:
            raise ProbeOperationError("connect", e) from e
        conn.autocommit = True
        self.conn = conn
        self.logger.debug("connected")

    def read(self) -> None:
        self.logger.debug("reading")
        try:
            with self.conn.cursor() as cursor:
                cursor.execute(self._query(SELECT_QUERY))
                row = cursor.fetchone()
        except errors.UndefinedTable as e:
            if self.create:
                self.write()
                return
            raise ProbeOperationError("read", e) from e
        except psycopg2.Error as e:
            raise ProbeOperationError("read", e) from e

        if row is None:
            raise ProbeOperationError("read", "no rows in result set")
        self.logger.debug(f"read ts={row[0]}")

    def write(self) -> None:
        self.logger.debug("writing")
        try:
            self._insert()
        except errors.UndefinedTable as e:
            if not self.create:
                raise ProbeOperationError("write", e) from e
            try:
                self._create_table()
                self._insert()
            except psycopg2.Error as create_error:
                raise ProbeOperationError("write", create_error) from create_error
        except psycopg2.Error as e:
            raise ProbeOperationError("write", e) from e
        self.logger.debug("written")

    def _insert(self) -> None:
        with self.conn.cursor() as cursor:
            cursor.execute(self._query(INSERT_QUERY))

    def _create_table(self) -> None:
        self.logger.debug("creating table")
        with self.conn.cursor() as cursor:
            cursor.execute(self._query(CREATE_QUERY))
        self.logger.debug("created")

    def disconnect(self) -> None:
        if self.conn is None:
            return
        self.logger.debug("disconnecting")
        try:
            self.conn.close()
        except psycopg2.Error as e:
            raise ProbeOperationError("disconnect", e) from e
        finally:
            self.conn = None
        self.logger.debug("disconnected")
