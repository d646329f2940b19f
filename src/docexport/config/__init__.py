"""Configuration models and loader."""

from .loader import ENV_PREFIX, load_config, parse_set_overrides, validate_for_export
from .models import (
    AuthConfig,
    DocExportConfig,
    ExportSettings,
    MongoConfig,
    S3Config,
    UploadSettings,
)

__all__ = [
    "ENV_PREFIX",
    "load_config",
    "parse_set_overrides",
    "validate_for_export",
    "AuthConfig",
    "DocExportConfig",
    "ExportSettings",
    "MongoConfig",
    "S3Config",
    "UploadSettings",
]
