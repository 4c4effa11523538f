"""Tests for host configuration parsing and YAML/env loading."""

import pytest

from cloudsearch_indexer.indexing.errors import ConfigurationError
from cloudsearch_indexer.indexing.models import AuthenticationMode
from cloudsearch_indexer.shared import config as config_module
from cloudsearch_indexer.shared.config import (
    IndexerConfig,
    Settings,
    build_indexer_config,
    get_config,
    init_observability,
    load_config,
    reload_config,
)

ENDPOINT = "doc-content-test-abc123.eu-west-1.cloudsearch.amazonaws.com"


class TestBuildIndexerConfig:
    def test_host_keys_and_defaults(self):
        config = build_indexer_config({"documentEndpoint": ENDPOINT})

        assert config.document_endpoint == ENDPOINT
        assert config.authentication is AuthenticationMode.IMPLICIT
        assert config.index_batch_size == 10
        assert config.active_publication_ids == []
        assert config.clear_on_failure is True

    def test_snake_case_keys(self):
        config = build_indexer_config(
            {
                "document_endpoint": ENDPOINT,
                "index_batch_size": 25,
                "active_publication_ids": ["5"],
                "clear_on_failure": False,
            }
        )

        assert config.index_batch_size == 25
        assert config.active_publication_ids == ["5"]
        assert config.clear_on_failure is False

    def test_batch_size_given_as_string(self):
        config = build_indexer_config(
            {"documentEndpoint": ENDPOINT, "indexBatchSize": " 50 "}
        )

        assert config.index_batch_size == 50

    def test_publication_nodes(self):
        config = build_indexer_config(
            {
                "documentEndpoint": ENDPOINT,
                "publications": [{"id": "5"}, {"Id": 12}, {"name": "no id"}, "20", ""],
            }
        )

        assert config.active_publication_ids == ["5", "12", "20"]

    def test_single_publication_node(self):
        config = build_indexer_config(
            {"documentEndpoint": ENDPOINT, "publications": {"id": 5}}
        )

        assert config.active_publication_ids == ["5"]

    def test_endpoint_with_port_and_scheme(self):
        config = build_indexer_config({"documentEndpoint": "http://localhost:8080/"})

        assert config.document_endpoint == "http://localhost:8080/"

    def test_nested_indexer_node(self):
        config = build_indexer_config({"indexer": {"documentEndpoint": ENDPOINT}})

        assert config.document_endpoint == ENDPOINT

    def test_implicit_mode_ignores_keys(self):
        config = build_indexer_config(
            {
                "documentEndpoint": ENDPOINT,
                "authentication": "implicit",
                "access_key_id": "AKIDEXAMPLE",
                "secret_access_key": "secret",  # pragma: allowlist secret
            }
        )

        request = config.dispatch_request()
        assert config.access_key_id is None
        assert request.access_key_id is None
        assert request.secret_access_key is None

    def test_explicit_mode_carries_keys(self):
        config = build_indexer_config(
            {
                "documentEndpoint": ENDPOINT,
                "authentication": "Explicit",
                "access_key_id": "AKIDEXAMPLE",
                "secret_access_key": "secret",  # pragma: allowlist secret
                "region": "eu-central-1",
            }
        )

        request = config.dispatch_request()
        assert request.authentication is AuthenticationMode.EXPLICIT
        assert request.access_key_id == "AKIDEXAMPLE"
        assert request.has_explicit_credentials
        assert request.region == "eu-central-1"

    def test_explicit_mode_without_keys_uses_default_chain(self):
        config = build_indexer_config(
            {"documentEndpoint": ENDPOINT, "authentication": "explicit"}
        )

        assert not config.uses_explicit_credentials
        assert not config.dispatch_request().has_explicit_credentials

    def test_config_instance_passes_through(self):
        config = IndexerConfig(document_endpoint=ENDPOINT)

        assert build_indexer_config(config) is config

    @pytest.mark.parametrize(
        "options",
        [
            {},
            {"documentEndpoint": ""},
            {"documentEndpoint": "   "},
            {"documentEndpoint": f"{ENDPOINT}:99999"},
            {"documentEndpoint": "https://:443"},
            {"documentEndpoint": ENDPOINT, "publications": 5.0},
            {"documentEndpoint": ENDPOINT, "indexBatchSize": 0},
            {"documentEndpoint": ENDPOINT, "indexBatchSize": "ten"},
            {"documentEndpoint": ENDPOINT, "authentication": "kerberos"},
            {"documentEndpoint": ENDPOINT, "requestTimeoutSeconds": -1},
            {"indexer": "not a mapping"},
        ],
    )
    def test_invalid_options(self, options):
        with pytest.raises(ConfigurationError):
            build_indexer_config(options)

    def test_non_mapping_options(self):
        with pytest.raises(ConfigurationError):
            build_indexer_config(["documentEndpoint", ENDPOINT])


class TestLoadConfig:
    def _write(self, tmp_path, text):
        path = tmp_path / "indexer.yaml"
        path.write_text(text)
        return path

    def test_loads_yaml_from_config_path(self, tmp_path, monkeypatch):
        path = self._write(
            tmp_path,
            f"""
indexer:
  documentEndpoint: {ENDPOINT}
  indexBatchSize: "3"
  publications:
    - id: "5"
""",
        )
        monkeypatch.setenv("CONFIG_PATH", str(path))
        monkeypatch.delenv("CLOUDSEARCH_DOCUMENT_ENDPOINT", raising=False)

        config, settings = load_config()

        assert settings.config_path == str(path)
        assert config.indexer.index_batch_size == 3
        assert config.indexer.active_publication_ids == ["5"]

    def test_env_overrides_endpoint(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, f"indexer:\n  documentEndpoint: {ENDPOINT}\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        monkeypatch.setenv("CLOUDSEARCH_DOCUMENT_ENDPOINT", "https://override.example")

        config, _ = load_config()

        assert config.indexer.document_endpoint == "https://override.example"

    def test_reload_replaces_cached_config(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, f"indexer:\n  documentEndpoint: {ENDPOINT}\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        monkeypatch.delenv("CLOUDSEARCH_DOCUMENT_ENDPOINT", raising=False)
        reload_config()
        assert get_config().indexer.index_batch_size == 10

        path.write_text(f"indexer:\n  documentEndpoint: {ENDPOINT}\n  indexBatchSize: 4\n")
        reload_config()

        assert get_config().indexer.index_batch_size == 4

    def test_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))

        with pytest.raises(ConfigurationError, match="not found"):
            load_config()

    def test_missing_endpoint(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, "indexer:\n  indexBatchSize: 4\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        monkeypatch.delenv("CLOUDSEARCH_DOCUMENT_ENDPOINT", raising=False)

        with pytest.raises(ConfigurationError):
            load_config()

    def test_malformed_yaml(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, "indexer: [unclosed\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))

        with pytest.raises(ConfigurationError, match="Malformed YAML"):
            load_config()


class TestInitObservability:
    def test_logging_follows_settings(self, monkeypatch):
        """LOG_LEVEL and LOG_JSON reach setup_logging."""
        calls = []
        monkeypatch.setattr(
            config_module,
            "setup_logging",
            lambda level, json_output=True: calls.append((level, json_output)),
        )
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_JSON", "false")

        settings = init_observability(Settings())

        assert calls == [("DEBUG", False)]
        assert settings.log_level == "DEBUG"

    def test_init_config_sets_up_logging(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(
            config_module,
            "setup_logging",
            lambda level, json_output=True: calls.append((level, json_output)),
        )
        path = tmp_path / "indexer.yaml"
        path.write_text(f"indexer:\n  documentEndpoint: {ENDPOINT}\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        monkeypatch.delenv("CLOUDSEARCH_DOCUMENT_ENDPOINT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_JSON", raising=False)

        reload_config()

        assert calls == [("INFO", True)]
