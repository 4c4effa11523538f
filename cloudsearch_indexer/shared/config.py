# Configuration loader for the staging indexer
# Host configuration comes from YAML (or a mapping handed to configure());
# process settings come from environment variables.

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx
import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..clients.dispatch import normalize_endpoint
from ..indexing.batching import DEFAULT_INDEX_BATCH_SIZE
from ..indexing.errors import ConfigurationError
from ..indexing.models import AuthenticationMode, DispatchRequest
from ..observability.logging import setup_logging
from ..observability.metrics import setup_metrics
from .models import IndexerBaseModel

logger = logging.getLogger(__name__)

INDEXER_NODE = "indexer"


class IndexerConfig(IndexerBaseModel):
    """Options accepted by ``CloudSearchIndexer.configure``."""

    document_endpoint: str = Field(
        validation_alias=AliasChoices("document_endpoint", "documentEndpoint")
    )
    authentication: AuthenticationMode = AuthenticationMode.IMPLICIT
    access_key_id: Optional[str] = Field(default=None, repr=False)
    secret_access_key: Optional[str] = Field(default=None, repr=False)
    index_batch_size: int = Field(
        default=DEFAULT_INDEX_BATCH_SIZE,
        gt=0,
        validation_alias=AliasChoices("index_batch_size", "indexBatchSize"),
    )
    active_publication_ids: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "active_publication_ids", "activePublicationIds", "publications"
        ),
    )
    clear_on_failure: bool = Field(
        default=True,
        validation_alias=AliasChoices("clear_on_failure", "clearOnFailure"),
    )
    region: Optional[str] = None
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices(
            "request_timeout_seconds", "requestTimeoutSeconds"
        ),
    )

    @field_validator("document_endpoint")
    @classmethod
    def _endpoint_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("documentEndpoint must be a non-empty URL or host")
        value = value.strip()
        try:
            url = httpx.URL(normalize_endpoint(value))
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"documentEndpoint is not a valid URL: {exc}") from exc
        if not url.host:
            raise ConfigurationError(f"documentEndpoint has no host: {value!r}")
        if url.port is not None and not 0 < url.port <= 65535:
            raise ConfigurationError(f"documentEndpoint port out of range: {url.port}")
        return value

    @field_validator("authentication", mode="before")
    @classmethod
    def _normalize_authentication(cls, value):
        if value is None or value == "":
            return AuthenticationMode.IMPLICIT
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("index_batch_size", mode="before")
    @classmethod
    def _batch_size_from_string(cls, value):
        # host configuration attributes arrive as strings
        if isinstance(value, str):
            return int(value.strip())
        return value

    @field_validator("active_publication_ids", mode="before")
    @classmethod
    def _publication_nodes(cls, value):
        """Accept ``["1", {"id": "2"}, {"Id": "3"}]``; entries without an id are skipped."""
        if value is None:
            return []
        if isinstance(value, (str, int, Mapping)):
            # a single publication node or id
            value = [value]
        elif not isinstance(value, Iterable):
            raise ValueError(
                f"publications must be a list of ids or id nodes, got {type(value).__name__}"
            )
        ids: List[str] = []
        for entry in value:
            if isinstance(entry, Mapping):
                pub_id = entry.get("id", entry.get("Id"))
            else:
                pub_id = entry
            if pub_id is None or str(pub_id).strip() == "":
                continue
            ids.append(str(pub_id).strip())
        return ids

    @model_validator(mode="after")
    def _drop_implicit_credentials(self) -> "IndexerConfig":
        # keys are only read in explicit mode
        if self.authentication is AuthenticationMode.IMPLICIT:
            self.access_key_id = None
            self.secret_access_key = None
        return self

    @property
    def uses_explicit_credentials(self) -> bool:
        return (
            self.authentication is AuthenticationMode.EXPLICIT
            and bool(self.access_key_id)
            and bool(self.secret_access_key)
        )

    def dispatch_request(self) -> DispatchRequest:
        """Endpoint and credentials handed to the dispatch client."""
        explicit = self.uses_explicit_credentials
        return DispatchRequest(
            endpoint=self.document_endpoint,
            authentication=self.authentication,
            access_key_id=self.access_key_id if explicit else None,
            secret_access_key=self.secret_access_key if explicit else None,
            region=self.region,
        )


class AppConfig(BaseModel):
    """Top level of the YAML host configuration"""

    indexer: IndexerConfig


class Settings(BaseSettings):
    """Environment-based settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="development", alias="ENV")
    config_path: Optional[str] = Field(default=None, alias="CONFIG_PATH")

    # Overrides the endpoint from the YAML file when set
    document_endpoint: Optional[str] = Field(
        default=None, alias="CLOUDSEARCH_DOCUMENT_ENDPOINT"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")


def build_indexer_config(
    options: Union[IndexerConfig, Mapping[str, Any]],
) -> IndexerConfig:
    """
    Validate host options into an IndexerConfig.

    Raises:
        ConfigurationError: If the options are malformed
    """
    if isinstance(options, IndexerConfig):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"indexer options must be a mapping, got {type(options).__name__}"
        )
    node = options.get(INDEXER_NODE, options)
    if not isinstance(node, Mapping):
        raise ConfigurationError("indexer node must be a mapping")
    try:
        config = IndexerConfig.model_validate(dict(node))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid indexer configuration: {exc}") from exc

    logger.info("Setting document endpoint to: %s", config.document_endpoint)
    logger.info("Authentication method set to: %s", config.authentication.value)
    if config.authentication is AuthenticationMode.EXPLICIT:
        if config.uses_explicit_credentials:
            logger.info("CloudSearch credentials are taken from the host configuration")
        else:
            logger.info(
                "No explicit CloudSearch credentials configured; falling back to "
                "the default AWS credential chain (~/.aws/credentials, environment)"
            )
    if not config.active_publication_ids:
        logger.info(
            "No publications configured, all items will be pushed to CloudSearch"
        )
    else:
        logger.info("Active publications: %s", config.active_publication_ids)
    logger.info("Index batch size set to: %s", config.index_batch_size)
    return config


def load_config() -> tuple[AppConfig, Settings]:
    """
    Load configuration from YAML file and environment variables.

    Returns:
        tuple: (AppConfig, Settings) - YAML config and environment settings

    Raises:
        ConfigurationError: If the config file is missing or invalid
    """
    settings = Settings()

    if settings.config_path:
        config_path = Path(settings.config_path)
    else:
        config_path = Path(__file__).parent.parent.parent / "config" / f"{settings.env}.yaml"

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, "r") as f:
        try:
            config_dict: Dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed YAML in {config_path}: {exc}") from exc

    node = dict(config_dict.get(INDEXER_NODE) or {})
    if settings.document_endpoint:
        node["document_endpoint"] = settings.document_endpoint

    config = AppConfig(indexer=build_indexer_config(node))
    return config, settings


# Global config instances (loaded once at startup)
_config: Optional[AppConfig] = None
_settings: Optional[Settings] = None


def get_config() -> AppConfig:
    """Get the global AppConfig instance"""
    global _config
    if _config is None:
        _config, _ = load_config()
    return _config


def get_settings() -> Settings:
    """Get the global Settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def init_observability(settings: Optional[Settings] = None) -> Settings:
    """Configure logging and metrics from environment settings."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, json_output=settings.log_json)
    setup_metrics(settings)
    return settings


def init_config() -> tuple[AppConfig, Settings]:
    """Initialize and cache global config instances, then logging and metrics"""
    global _config, _settings
    _config, _settings = load_config()
    init_observability(_settings)
    return _config, _settings


def reload_config() -> tuple[AppConfig, Settings]:
    """Force reload of config/settings from disk and environment."""
    return init_config()
