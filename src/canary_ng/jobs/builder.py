"""
Job expansion.

Turns one job configuration into one or more runnable jobs:

1. resolve the target hosts (host, hosts, discovery, or none with a dsn)
2. with job_per_host, build one job per host, each with its own name
3. derive names, prefixed with the hosts when prefix_name_with_host is set
4. build each job: labels, optional hostname caching, probe, interval

The input configuration is never modified; derived configurations are
copies, so expanding the same configuration twice yields the same jobs.
"""

import ipaddress
import logging
import socket
from dataclasses import replace
from typing import List

from canary_ng.discovery import discover_hosts
from canary_ng.jobs.job import DEFAULT_INTERVAL, Job
from canary_ng.monitoring.metrics import CanaryMetrics
from canary_ng.probes import create_probe
from canary_ng.utils.config import JobConfig, QueryLabelsConfig
from canary_ng.utils.errors import (
    HostResolutionError,
    MissingLabelNameError,
    MissingTargetError,
    NoHostsFoundError,
)

logger = logging.getLogger(__name__)

JOB_NAME_SEPARATOR = "/"
SRV_SCHEME_SUFFIX = "+srv"


def resolve_targets(config: JobConfig) -> List[str]:
    """
    Determine the hosts targeted by a job.

    Precedence is host, then hosts, then hosts_discovery. A job with none of
    them must define a dsn, in which case the host list is empty.

    Args:
        config: Job configuration

    Returns:
        Ordered host list

    Raises:
        DiscoveryError: If discovery fails
        NoHostsFoundError: If discovery returns no host
        MissingTargetError: If no target is configured at all
    """
    if config.host:
        return [config.host]

    if config.hosts:
        return list(config.hosts)

    if config.hosts_discovery.type:
        hosts = discover_hosts(config.hosts_discovery)
        if not hosts:
            raise NoHostsFoundError()
        return list(hosts)

    if not config.dsn:
        raise MissingTargetError(config.name)

    return []


def add_host_prefix(config: JobConfig) -> str:
    """
    Derive the job name.

    With prefix_name_with_host, hosts and the name are joined with the
    separator ("/" by default), e.g. "10.0.0.1/ping".

    Args:
        config: Job configuration with its final host list

    Returns:
        Job name
    """
    if not config.prefix_name_with_host:
        return config.name
    separator = config.name_separator or JOB_NAME_SEPARATOR
    return separator.join([separator.join(config.hosts), config.name])


def uses_srv_scheme(config: JobConfig) -> bool:
    """Whether the store resolves hosts itself through DNS SRV records."""
    if config.scheme.endswith(SRV_SCHEME_SUFFIX):
        return True
    scheme, sep, _ = config.dsn.partition("://")
    return bool(sep) and scheme.endswith(SRV_SCHEME_SUFFIX)


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def resolve_hostname(host: str) -> List[str]:
    """
    Resolve a hostname to all its addresses.

    A trailing ":port" is kept on every resolved address. IP addresses are
    returned unchanged.

    Args:
        host: Hostname, optionally followed by ":port"

    Returns:
        Distinct addresses in resolver order

    Raises:
        HostResolutionError: If the name cannot be resolved
    """
    if _is_ip(host):
        return [host]

    name, port = host, ""
    head, sep, tail = host.rpartition(":")
    if sep and tail.isdigit() and ":" not in head:
        name, port = head, tail
        if _is_ip(name):
            return [host]

    logger.debug(f"resolving hostname {name}")
    try:
        infos = socket.getaddrinfo(name, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError) as e:
        raise HostResolutionError(name, str(e)) from e

    addresses = []
    for info in infos:
        address = info[4][0]
        if address not in addresses:
            addresses.append(address)

    if not addresses:
        raise HostResolutionError(name, "no address returned")

    logger.debug(f"resolved {name} to {addresses}")

    if not port:
        return addresses
    return [f"[{a}]:{port}" if ":" in a else f"{a}:{port}" for a in addresses]


def cache_hostnames(hosts: List[str]) -> List[str]:
    """
    Replace hostnames by their addresses.

    Args:
        hosts: Host list

    Returns:
        Host list where each name is replaced by all its addresses

    Raises:
        HostResolutionError: If a name cannot be resolved
    """
    resolved = []
    for host in hosts:
        resolved.extend(resolve_hostname(host))
    return resolved


def build_job(
    config: JobConfig,
    metrics: CanaryMetrics,
    query_labels: QueryLabelsConfig,
    job_label_name: str
) -> Job:
    """
    Build a single job.

    Args:
        config: Job configuration with its final name and hosts
        metrics: Shared metrics sink
        query_labels: Query label configuration
        job_label_name: Name of the label carrying the job name

    Returns:
        Job ready to run

    Raises:
        MissingLabelNameError: If job_label_name is empty
        HostResolutionError: If hostname caching fails
        UnsupportedStoreTypeError: If the type is unknown
        ConfigError: If the probe rejects its options
    """
    labels = dict(config.labels)
    if not job_label_name:
        raise MissingLabelNameError()
    labels[job_label_name] = config.name

    if config.cache_hostnames:
        if uses_srv_scheme(config):
            logger.warning(f"skipping cache_hostnames for {config.scheme or 'srv'} scheme")
        else:
            config = replace(config, hosts=cache_hostnames(config.hosts))

    probe = create_probe(config)

    return Job(
        name=config.name,
        probe=probe,
        metrics=metrics,
        labels=labels,
        query_labels=query_labels,
        query_type=config.query_type,
        interval=config.interval or DEFAULT_INTERVAL,
    )


def build_jobs(
    config: JobConfig,
    metrics: CanaryMetrics,
    query_labels: QueryLabelsConfig,
    job_label_name: str
) -> List[Job]:
    """
    Expand a job configuration into jobs.

    Args:
        config: Job configuration as written by the user
        metrics: Shared metrics sink
        query_labels: Query label configuration
        job_label_name: Name of the label carrying the job name

    Returns:
        One job, or one job per host with job_per_host

    Raises:
        CanaryError: If any job of this configuration cannot be built
    """
    hosts = resolve_targets(config)

    if config.job_per_host and hosts:
        jobs = []
        for host in hosts:
            host_config = replace(config, host="", hosts=[host])
            host_config = replace(host_config, name=add_host_prefix(host_config))
            jobs.append(build_job(host_config, metrics, query_labels, job_label_name))
        return jobs

    job_config = replace(config, host="", hosts=hosts)
    job_config = replace(job_config, name=add_host_prefix(job_config))
    return [build_job(job_config, metrics, query_labels, job_label_name)]
