"""
MongoDB probe.

Upserts a document {id: 1, ts: <timestamp>} in the canary collection and
reads it back.
"""

import time
from typing import Any, Dict
from urllib.parse import urlencode

from bson.timestamp import Timestamp
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from canary_ng.probes.base import Probe
from canary_ng.utils.errors import ConfigError, ProbeOperationError

DEFAULT_SCHEME = "mongodb"


class MongodbProbe(Probe):
    """Probe for MongoDB replica sets and standalone servers."""

    name = "mongodb"

    def __init__(self, config):
        super().__init__(config)
        self.require("database", "collection")
        self.client = None
        self.uri = self.build_uri()

    def build_uri(self) -> str:
        """
        Build the connection string.

        Returns:
            The configured dsn, or a URI composed from scheme, hosts,
            database and TLS settings

        Raises:
            ConfigError: If no host is configured and no dsn is given
        """
        if self.config.dsn:
            return self.config.dsn

        scheme = self.config.scheme or DEFAULT_SCHEME
        if not scheme.endswith("://"):
            scheme += "://"

        if not self.hosts:
            raise ConfigError("invalid mongodb hosts")

        uri = scheme + ",".join(self.hosts) + "/" + self.config.database

        params = []
        if self.config.tls:
            params.append(("tls", "true"))
            if self.config.tls_insecure:
                params.append(("tlsInsecure", "true"))
        if params:
            uri += "?" + urlencode(params)

        return uri

    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments passed to MongoClient besides the URI."""
        timeout_ms = self.timeout * 1000
        options: Dict[str, Any] = {
            "server_api": ServerApi("1"),
            "serverSelectionTimeoutMS": timeout_ms,
            "connectTimeoutMS": timeout_ms,
            "socketTimeoutMS": timeout_ms,
        }
        if self.config.username:
            options["username"] = self.config.username
        if self.config.password:
            options["password"] = self.config.password
        if self.config.auth_source:
            options["authSource"] = self.config.auth_source
        if self.config.auth_mechanism:
            options["authMechanism"] = self.config.auth_mechanism
        return options

    def _collection(self):
        return self.client[self.config.database][self.config.collection]

    def connect(self) -> None:
        self.logger.debug("connecting")
        self.reset()
        client = None
        try:
            client = MongoClient(self.uri, **self.client_options())
            self.logger.debug("sending ping")
            client.admin.command("ping")
        except PyMongoError as e:
            if client is not None:
                client.close()
            raise ProbeOperationError("connect", e) from e
        self.client = client
        self.logger.debug("connected")

    def read(self) -> None:
        self.logger.debug("reading")
        try:
            result = self._collection().find_one({"id": 1})
        except PyMongoError as e:
            raise ProbeOperationError("read", e) from e

        if result is None:
            if not self.create:
                raise ProbeOperationError("read", "no documents in result")
            self.logger.debug("creating initial document")
            self.write()
            return

        self.logger.debug(f"read result={result}")

    def write(self) -> None:
        self.logger.debug("writing")
        ts = Timestamp(int(time.time()), 0)
        try:
            self._collection().update_one(
                {"id": 1},
                {"$set": {"id": 1, "ts": ts}},
                upsert=True
            )
        except PyMongoError as e:
            raise ProbeOperationError("write", e) from e
        self.logger.debug("written")

    def disconnect(self) -> None:
        if self.client is None:
            return
        self.logger.debug("disconnecting")
        try:
            self.client.close()
        except PyMongoError as e:
            raise ProbeOperationError("disconnect", e) from e
        finally:
            self.client = None
        self.logger.debug("disconnected")
