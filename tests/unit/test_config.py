"""
Unit tests for configuration loading.
"""

import pytest
from unittest.mock import patch
from prometheus_client import Histogram

from canary_ng.utils.config import Config, DiscoveryConfig, load_config, parse_config
from canary_ng.utils.errors import ConfigError


class TestDefaults:
    """Test global defaults."""

    def test_config_defaults(self):
        """Test the defaults of an empty configuration."""
        config = parse_config({})

        assert config.listen_addr == ":8080"
        assert config.route == "/metrics"
        assert config.job_label_name == "job_name"
        assert config.duration_metric == "canary_ng_duration"
        assert config.failures_metric == "canary_ng_failures"
        assert config.jobs_metric == "canary_ng_jobs"
        assert config.queries_metric == "canary_ng_queries"
        assert config.buckets == list(Histogram.DEFAULT_BUCKETS)
        assert config.log_level == "warn"
        assert config.jobs == []

    def test_query_label_defaults(self):
        """Test query label name and values."""
        labels = Config().query_labels

        assert labels.name == "query"
        assert labels.connect_value == "connect"
        assert labels.read_value == "read"
        assert labels.write_value == "write"
        assert labels.disconnect_value == "disconnect"

    def test_none_document(self):
        """Test an empty file gives the defaults."""
        assert parse_config(None) == Config()


class TestParseConfig:
    """Test mapping a document onto dataclasses."""

    def test_full_job(self):
        """Test nested sections are built."""
        config = parse_config({
            "listen_addr": "127.0.0.1:9090",
            "query_labels": {"name": "phase", "read_value": "r"},
            "jobs": [{
                "name": "cache",
                "type": "valkey",
                "query_type": "read_write",
                "key": "canary",
                "labels": {"team": "storage", "shard": 3},
                "hosts_discovery": {"type": "consul", "node_meta": {"role": "valkey"}},
            }],
        })

        job = config.jobs[0]
        assert config.listen_addr == "127.0.0.1:9090"
        assert config.query_labels.name == "phase"
        assert config.query_labels.read_value == "r"
        assert config.query_labels.write_value == "write"
        assert job.labels == {"team": "storage", "shard": "3"}
        assert job.hosts_discovery == DiscoveryConfig(type="consul", node_meta={"role": "valkey"})

    def test_null_values_use_defaults(self):
        """Test explicit nulls keep the defaults."""
        config = parse_config({"route": None, "jobs": [{"name": "a", "query_type": "read", "hosts": None}]})

        assert config.route == "/metrics"
        assert config.jobs[0].hosts == []

    def test_unknown_key_is_ignored(self):
        """Test unknown keys are logged and do not fail loading."""
        with patch("canary_ng.utils.config.logger") as mock_logger:
            config = parse_config({"jobs": [{"name": "a", "query_type": "read", "colour": "red"}]})

        assert config.jobs[0].name == "a"
        message = mock_logger.warning.call_args[0][0]
        assert "jobs[0]" in message
        assert "colour" in message

    def test_compatibility_keys_accepted(self):
        """Test allow_native_passwords and replicated load without a warning."""
        with patch("canary_ng.utils.config.logger") as mock_logger:
            config = parse_config({"jobs": [{
                "name": "my",
                "type": "mysql",
                "query_type": "read",
                "allow_native_passwords": True,
                "replicated": False,
            }]})

        assert config.jobs[0].type == "mysql"
        mock_logger.warning.assert_not_called()

    @pytest.mark.parametrize("key, value, message", [
        ("interval", "10s", "jobs[0].interval must be an integer"),
        ("interval", True, "jobs[0].interval must be an integer"),
        ("port", "5432", "jobs[0].port must be an integer"),
        ("create", "yes", "jobs[0].create must be a boolean"),
        ("labels", ["a"], "jobs[0].labels must be a mapping"),
        ("labels", {"team": ["a"]}, "jobs[0].labels.team must be a string"),
        ("hosts", "db1", "jobs[0].hosts must be a list"),
        ("table", {"name": "canary"}, "jobs[0].table must be a string"),
    ])
    def test_wrong_value_type(self, key, value, message):
        """Test values of the wrong type are a ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"jobs": [{"name": "a", "query_type": "read", key: value}]})

        assert message in str(exc_info.value)

    def test_wrong_global_value_type(self):
        """Test global values are checked too."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"buckets": [0.1, "fast"]})

        assert "buckets[1] must be a number" in str(exc_info.value)

    def test_wrong_discovery_value_type(self):
        """Test nested discovery values are checked."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"jobs": [{"name": "a", "query_type": "read", "hosts_discovery": {"addresses": "c:8500"}}]})

        assert "jobs[0].hosts_discovery.addresses must be a list" in str(exc_info.value)

    def test_scalars_converted_for_strings(self):
        """Test numbers given for string options are converted."""
        config = parse_config({"jobs": [{"name": "a", "query_type": "read", "database": 2, "password": 1234}]})

        assert config.jobs[0].database == "2"
        assert config.jobs[0].password == "1234"
        assert parse_config({"buckets": [1, 2.5]}).buckets == [1.0, 2.5]

    def test_jobs_not_a_list(self):
        """Test jobs must be a list."""
        with pytest.raises(ConfigError):
            parse_config({"jobs": {"name": "a"}})

    def test_job_not_a_mapping(self):
        """Test each job must be a mapping."""
        with pytest.raises(ConfigError):
            parse_config({"jobs": ["a"]})

    @pytest.mark.parametrize("query_type", ["", "delete", "READ"])
    def test_invalid_query_type(self, query_type):
        """Test query types are validated."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"jobs": [{"name": "a", "query_type": query_type}]})

        assert "invalid query type" in str(exc_info.value)

    def test_job_without_name(self):
        """Test every job needs a name."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"jobs": [{"query_type": "read"}]})

        assert "job without name" in str(exc_info.value)


class TestLoadConfig:
    """Test reading configuration files."""

    def test_load_file(self, tmp_path):
        """Test a YAML file is loaded."""
        path = tmp_path / "canary-ng.yaml"
        path.write_text(
            "listen_addr: ':9100'\n"
            "jobs:\n"
            "  - name: pg\n"
            "    type: postgresql\n"
            "    query_type: read\n"
            "    hosts: [db1, db2]\n"
            "    table: canary\n"
        )

        config = load_config(str(path))

        assert config.listen_addr == ":9100"
        assert config.jobs[0].hosts == ["db1", "db2"]

    def test_missing_file(self, tmp_path):
        """Test a missing file is a ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            load_config(str(tmp_path / "missing.yaml"))

        assert "could not read" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        """Test a malformed file is a ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("jobs: [\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(str(path))

        assert "could not parse" in str(exc_info.value)

    def test_wrong_type_in_file(self, tmp_path):
        """Test a mistyped file fails loading with a ConfigError."""
        path = tmp_path / "canary-ng.yaml"
        path.write_text(
            "jobs:\n"
            "  - name: pg\n"
            "    query_type: read\n"
            "    labels: [a]\n"
        )

        with pytest.raises(ConfigError):
            load_config(str(path))
