"""
functions/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the Plate Availability Checker API.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Loading default values from parameters/parameters.yaml
- Overriding defaults with environment variables (PLATECHECK_*)
- Honouring the deployment-level PORT and DEBUG_DMV variables
- Exposing a cached, fully-validated Settings object to the application

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is loaded in the following order (last wins):

1) Field defaults declared below
2) YAML defaults from:
       parameters/parameters.yaml
3) Environment variables:
       PLATECHECK_*  (PORT and DEBUG_DMV are also accepted)

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- HTTP calls
- Caching or rate limiting
- Request handling

DESIGN INTENT
-------------
- All runtime-configurable behavior MUST be declared here
- Invalid values fail fast at startup
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal

import structlog
import yaml
from pydantic import AliasChoices, AnyHttpUrl, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"


class Settings(BaseSettings):
    """
    Runtime settings for the Plate Availability Checker API.

    Load order / precedence:
        1) YAML defaults (parameters/parameters.yaml)
        2) Environment variables (PLATECHECK_*), overriding YAML
    """

    model_config = SettingsConfigDict(
        env_prefix="PLATECHECK_",
        extra="ignore",
        populate_by_name=True,
    )

    # Service metadata
    service_name: str = "plate_availability_checker"
    environment: str = "local"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Listener
    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PLATECHECK_PORT", "PORT"),
    )

    # DMV upstream
    dmv_start_url: AnyHttpUrl = "https://www.dmv.ca.gov/wasapp/ipp2/startPers.do"
    dmv_check_url: AnyHttpUrl = "https://www.dmv.ca.gov/wasapp/ipp2/checkPers.do"
    dmv_origin: str = "https://www.dmv.ca.gov"
    user_agent: str = "Mozilla/5.0 (compatible; PlateChecker/1.0; +https://platechecker.org)"

    # Session acquisition and the check call are each bounded by this timeout.
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)

    # Result cache / rate limiter
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_requests: int = Field(default=20, ge=1)

    # Front-end bundle served for every non-API path (mounted only if present)
    static_dir: str = "public"

    # Diagnostics
    debug_dmv: bool = Field(
        default=False,
        description="If true, uninterpretable DMV responses are logged with a payload snippet.",
        validation_alias=AliasChoices("PLATECHECK_DEBUG_DMV", "DEBUG_DMV"),
    )
    payload_snippet_length: int = Field(default=500, ge=0)


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    Cached to:
    - Avoid repeated disk I/O
    - Guarantee consistent config during process lifetime
    """
    if not PARAMETERS_PATH.exists():
        logger.warning("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}

    if not isinstance(data, dict):
        logger.warning(
            "parameters_yaml_not_dict",
            path=str(PARAMETERS_PATH),
            type=type(data).__name__,
        )
        return {}

    logger.info("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
    return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Construct and return the final validated Settings object.

    This function is:
    - Cached (singleton per process)
    - The ONLY supported way to access runtime settings
    """
    # 1) YAML defaults
    yaml_data = _load_yaml_parameters()

    # 2) env overrides (partial)
    try:
        env_settings = Settings()
        env_data = env_settings.model_dump(exclude_unset=True)
        logger.info("settings_loaded_env_partial", fields=list(env_data.keys()))
    except ValidationError as exc:
        logger.error("settings_env_validation_error", errors=exc.errors())
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc

    # 3) merge + final validation
    merged: Dict[str, Any] = {**yaml_data, **env_data}
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:
        logger.error("settings_validation_error", errors=exc.errors(), yaml_path=str(PARAMETERS_PATH))
        raise RuntimeError(f"Invalid configuration in {PARAMETERS_PATH}: {exc}") from exc

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        port=settings.port,
        dmv_check_url=str(settings.dmv_check_url),
        upstream_timeout_seconds=settings.upstream_timeout_seconds,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        rate_limit_window_seconds=settings.rate_limit_window_seconds,
        rate_limit_max_requests=settings.rate_limit_max_requests,
        debug_dmv=settings.debug_dmv,
    )

    return settings
