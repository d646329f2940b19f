from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from bson import json_util
from pydantic import BaseModel, ConfigDict, Field, field_validator


class MongoConfig(BaseModel):
    uri: str = "mongodb://localhost:27017"
    database: str = "test"
    app_name: Optional[str] = Field(default="docexport", description="Reported to the server as appname")
    server_selection_timeout_ms: int = Field(default=30000, gt=0)

    model_config = ConfigDict(extra="allow")


class S3Config(BaseModel):
    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    sse: Literal["s3", "kms", "none"] | None = None
    kms_key_id: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class AuthConfig(BaseModel):
    """AWS credentials: static keys, the default chain, or an assumed role."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    role_arn: Optional[str] = None
    role_session_name: str = "docexport"
    env_file: Optional[str] = Field(default=None, description="Optional .env file loaded before resolving credentials")

    model_config = ConfigDict(extra="allow")


class ExportSettings(BaseModel):
    collection: Optional[str] = None
    filter: Dict[str, Any] = Field(default_factory=dict)
    key: Optional[str] = None
    prefix: Optional[str] = None
    datawrapper_key: Optional[str] = "dataList"
    batch_size: int = Field(default=1000, gt=0)
    compression: bool = False
    include_metadata: bool = True

    model_config = ConfigDict(extra="allow")

    @field_validator("filter", mode="before")
    @classmethod
    def _parse_filter(cls, value: Any) -> Any:
        # Filters may arrive as extended JSON text from env or --set overrides.
        if value is None:
            return {}
        if isinstance(value, (str, bytes)):
            text = value.decode("utf-8") if isinstance(value, bytes) else value
            if not text.strip():
                return {}
            try:
                value = json_util.loads(text)
            except ValueError as e:
                raise ValueError(f"filter is not valid JSON: {e}") from e
            if not isinstance(value, dict):
                raise ValueError("filter must be a JSON object")
        elif isinstance(value, dict):
            # Mapping forms (YAML) still resolve extended JSON such as {"$oid": ...}.
            value = json_util.loads(json_util.dumps(value))
        return value

    @field_validator("datawrapper_key", "key", "prefix", "collection", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        # Env overrides parse numeric-looking names ("2024") into numbers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class UploadSettings(BaseModel):
    max_workers: int = Field(default=1, ge=1, description="Concurrent part uploads; 1 keeps uploads sequential")
    retry_max_attempts: int = Field(default=5, ge=1)
    retry_max_elapsed_s: float = Field(default=30.0, ge=0)


class DocExportConfig(BaseModel):
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    s3: S3Config = Field(default_factory=S3Config)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    export: ExportSettings = Field(default_factory=ExportSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)

    model_config = ConfigDict(extra="allow")


__all__ = [
    "MongoConfig",
    "S3Config",
    "AuthConfig",
    "ExportSettings",
    "UploadSettings",
    "DocExportConfig",
]
