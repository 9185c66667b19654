"""
Configuration loader for condition evaluation.

Uses Pydantic Settings for environment variable parsing, with SSM parameter
resolution in non-local environments.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

import boto3
from pydantic import SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

SSM_SUFFIX = "_SSM_PARAM"
# GetParameters accepts at most 10 names per call
SSM_BATCH_SIZE = 10
DEFAULT_AWS_REGION = "us-east-1"


class Settings(BaseSettings):
    """Evaluation configuration loaded from environment variables.

    In production (APP_ENV != 'local'), any setting may instead be given as
    ``<NAME>_SSM_PARAM`` naming an AWS Systems Manager parameter, which is
    resolved before the settings object is constructed.
    """

    transform_url: str
    transform_api_key: SecretStr | None = None
    transform_timeout_seconds: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def _ssm_targets() -> dict[str, str]:
    """Map setting env var names to the SSM parameter that supplies them.

    ``TRANSFORM_API_KEY_SSM_PARAM=/ngalert/prod/transform-key`` yields
    ``{"TRANSFORM_API_KEY": "/ngalert/prod/transform-key"}``. Suffixed
    variables that do not name a setting are left alone.
    """
    settings_keys = {name.upper() for name in Settings.model_fields}
    targets: dict[str, str] = {}
    for key, value in os.environ.items():
        if key.endswith(SSM_SUFFIX) and key[: -len(SSM_SUFFIX)] in settings_keys:
            targets[key[: -len(SSM_SUFFIX)]] = value
    return targets


def _resolve_ssm_params(region: str) -> None:
    """Set each SSM-backed setting's env var to its decrypted parameter value."""
    targets = _ssm_targets()
    if not targets:
        return

    ssm = boto3.client("ssm", region_name=region)

    names = list(dict.fromkeys(targets.values()))
    resolved: dict[str, str] = {}
    for i in range(0, len(names), SSM_BATCH_SIZE):
        response = ssm.get_parameters(
            Names=names[i : i + SSM_BATCH_SIZE], WithDecryption=True
        )
        resolved.update({p["Name"]: p["Value"] for p in response["Parameters"]})
        for missing in response.get("InvalidParameters", []):
            logger.warning("SSM parameter %s not found", missing)

    for env_key, param_name in targets.items():
        if param_name in resolved:
            os.environ[env_key] = resolved[param_name]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""
    if os.environ.get("APP_ENV", "local") != "local":
        _resolve_ssm_params(os.environ.get("AWS_REGION", DEFAULT_AWS_REGION))

    return Settings()  # type: ignore[call-arg]
