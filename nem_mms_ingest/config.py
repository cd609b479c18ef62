"""
Configuration models and YAML I/O for nem-mms-ingest.

Key models:
- IngestConfig: Parser settings (timezone, timestamp format, decoding,
  row-error policy, worker count) plus the NEMWEB client settings.
- NemwebConfig: Base URL, user agent and timeout for the HTTP helpers.

Key functions:
- load_config(path) -> IngestConfig: Load and validate from YAML.
- save_config(config, path): Serialize to YAML.

Every field has a default, so ``IngestConfig()`` is a working config for
AEMO files published in Sydney local time.
"""

from __future__ import annotations

import codecs
import logging
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator

from nem_mms_ingest.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Australia/Sydney"
DEFAULT_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


class NemwebConfig(BaseModel):
    """Settings for the NEMWEB HTTP helpers."""

    base_url: str = Field("https://nemweb.com.au", description="Scheme + host of NEMWEB")
    user_agent: str = Field("nem-mms-ingest/0.1", description="User-Agent header sent on every request")
    timeout_seconds: float = Field(10.0, gt=0, description="Per-request timeout")


class IngestConfig(BaseModel):
    """Top-level configuration for nem-mms-ingest."""

    timezone: str = Field(
        DEFAULT_TIMEZONE,
        description="IANA zone the file's local timestamps are written in",
    )
    timestamp_format: str = Field(
        DEFAULT_TIMESTAMP_FORMAT,
        description="strptime pattern of local timestamps",
    )
    encoding: str = Field(
        "utf-8-sig",
        description="Text encoding used to decode entry bytes (strict)",
    )
    on_row_error: Literal["skip", "abort"] = Field(
        "skip",
        description=(
            "'skip' records row-level errors and keeps scanning; "
            "'abort' fails the whole entry on the first one"
        ),
    )
    max_workers: int = Field(
        1, ge=1, description="Entries parsed concurrently by the batch aggregator"
    )
    nemweb: NemwebConfig = Field(default_factory=NemwebConfig)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: '{value}'") from exc
        return value

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding: '{value}'") from exc
        return value


def load_config(path: str | Path) -> IngestConfig:
    """Load and validate an ingest YAML file into an IngestConfig model.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigValidationError: If the file is empty.
        pydantic.ValidationError: If the YAML content fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            f"Config file must contain a mapping, got {type(raw).__name__}: {path}"
        )
    logger.info("Loaded config from %s", path)
    return IngestConfig.model_validate(raw)


def save_config(config: IngestConfig, path: str | Path) -> None:
    """Serialize an IngestConfig to YAML with a short header comment."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        f.write("# nem-mms-ingest configuration\n\n")
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved config to %s", path)
