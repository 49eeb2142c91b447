"""
Configuration Loader for canary-ng

Reads the YAML configuration file and maps it onto dataclasses, checking
value types. Global defaults are applied before the file is merged, then
jobs are validated for the fields the job engine cannot run without.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, get_args, get_origin

import yaml
from prometheus_client import Histogram

from canary_ng.utils.errors import ConfigError

logger = logging.getLogger(__name__)

QUERY_TYPE_CONNECT = "connect"
QUERY_TYPE_READ = "read"
QUERY_TYPE_WRITE = "write"
QUERY_TYPE_READ_WRITE = "read_write"
QUERY_TYPE_DISCONNECT = "disconnect"

VALID_QUERY_TYPES = [QUERY_TYPE_READ, QUERY_TYPE_WRITE, QUERY_TYPE_READ_WRITE]
VALID_LOG_LEVELS = ["debug", "info", "warn", "error"]
VALID_LOG_FORMATS = ["text", "json"]

DEFAULT_CONFIG_FILE = "canary-ng.yaml"

# Accepted for compatibility, without effect
IGNORED_KEYS = ["allow_native_passwords", "replicated"]


@dataclass
class QueryLabelsConfig:
    """Name and values of the label attached to duration observations."""

    name: str = "query"
    connect_value: str = QUERY_TYPE_CONNECT
    read_value: str = QUERY_TYPE_READ
    write_value: str = QUERY_TYPE_WRITE
    disconnect_value: str = QUERY_TYPE_DISCONNECT


@dataclass
class DiscoveryConfig:
    """Host discovery settings of a job."""

    type: str = ""
    addresses: List[str] = field(default_factory=list)
    datacenter: str = ""
    scheme: str = ""
    skip_verify: bool = False
    token: str = ""
    node_meta: Dict[str, str] = field(default_factory=dict)
    return_meta: str = ""
    return_metas: List[str] = field(default_factory=list)


@dataclass
class JobConfig:
    """
    Declarative description of a job.

    Targets are selected by host, hosts, hosts_discovery or dsn, in that
    order of precedence.
    """

    name: str = ""
    type: str = ""
    query_type: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    interval: int = 0
    timeout: int = 0
    dsn: str = ""
    scheme: str = ""
    username: str = ""
    password: str = ""
    host: str = ""
    hosts: List[str] = field(default_factory=list)
    cache_hostnames: bool = False
    hosts_discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    job_per_host: bool = False
    prefix_name_with_host: bool = False
    name_separator: str = ""
    port: int = 0
    database: str = ""
    auth_source: str = ""
    auth_mechanism: str = ""
    collection: str = ""
    table: str = ""
    key: str = ""
    create: bool = False
    cluster: str = ""
    secure: bool = False
    skip_verify: bool = False
    sslmode: str = ""
    tls: bool = False
    tls_insecure: bool = False
    tls_config: str = ""
    master_set: str = ""


@dataclass
class Config:
    """Global configuration."""

    listen_addr: str = ":8080"
    route: str = "/metrics"
    jobs: List[JobConfig] = field(default_factory=list)
    job_label_name: str = "job_name"
    buckets: List[float] = field(default_factory=lambda: list(Histogram.DEFAULT_BUCKETS))
    duration_metric: str = "canary_ng_duration"
    failures_metric: str = "canary_ng_failures"
    jobs_metric: str = "canary_ng_jobs"
    queries_metric: str = "canary_ng_queries"
    query_labels: QueryLabelsConfig = field(default_factory=QueryLabelsConfig)
    log_level: str = "warn"
    log_format: str = "text"


def _check_value(field_type, value, location: str):
    """
    Check a scalar, list or mapping value against its field type.

    Scalars are accepted for string fields and converted with str().

    Raises:
        ConfigError: If the value does not match the field type
    """
    expected = get_origin(field_type) or field_type

    if expected is str:
        if not isinstance(value, (str, int, float, bool)):
            raise ConfigError(f"{location} must be a string")
        return str(value)

    if expected is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"{location} must be a boolean")
        return value

    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{location} must be an integer")
        return value

    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{location} must be a number")
        return float(value)

    if expected is list:
        if not isinstance(value, list):
            raise ConfigError(f"{location} must be a list")
        item_type = get_args(field_type)[0]
        return [_check_value(item_type, item, f"{location}[{i}]") for i, item in enumerate(value)]

    if expected is dict:
        if not isinstance(value, dict):
            raise ConfigError(f"{location} must be a mapping")
        value_type = get_args(field_type)[1]
        return {str(k): _check_value(value_type, v, f"{location}.{k}") for k, v in value.items()}

    return value


def _build(cls, data: Optional[Dict[str, Any]], path: str):
    """
    Instantiate a config dataclass from a mapping.

    Unknown keys are logged and ignored.

    Args:
        cls: Dataclass to build
        data: Mapping read from YAML (None means defaults)
        path: Location in the file, used in error messages

    Returns:
        Dataclass instance

    Raises:
        ConfigError: If the mapping is not a dict or a value has the wrong type
    """
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must be a mapping")

    field_types = {f.name: f.type for f in fields(cls)}
    unknown = sorted(str(k) for k in set(data) - set(field_types))
    ignored = [k for k in unknown if k not in IGNORED_KEYS]
    if ignored:
        logger.warning(f"ignoring unknown keys in {path}: {', '.join(ignored)}")

    kwargs = {}
    for key, value in data.items():
        if value is None or key not in field_types:
            continue
        location = key if cls is Config else f"{path}.{key}"
        if cls is JobConfig and key == "hosts_discovery":
            value = _build(DiscoveryConfig, value, location)
        elif cls is Config and key == "query_labels":
            value = _build(QueryLabelsConfig, value, location)
        elif cls is Config and key == "jobs":
            if not isinstance(value, list):
                raise ConfigError("jobs must be a list")
            value = [_build(JobConfig, job, f"jobs[{i}]") for i, job in enumerate(value)]
        else:
            value = _check_value(field_types[key], value, location)
        kwargs[key] = value

    return cls(**kwargs)


def parse_config(data: Optional[Dict[str, Any]]) -> Config:
    """
    Build and validate a Config from an already parsed mapping.

    Args:
        data: Parsed YAML document

    Returns:
        Validated Config

    Raises:
        ConfigError: If a job has no name or an invalid query type
    """
    config = _build(Config, data, "configuration")

    for job in config.jobs:
        if job.query_type not in VALID_QUERY_TYPES:
            raise ConfigError(f"invalid query type {job.query_type} for job {job.name}")

    for job in config.jobs:
        if not job.name:
            raise ConfigError("job without name")

    return config


def load_config(path: str) -> Config:
    """
    Read a configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"could not read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"could not parse {path}: {e}") from e

    config = parse_config(data)
    logger.debug(f"Loaded {len(config.jobs)} jobs from {path}")
    return config
