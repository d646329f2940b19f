"""AWS credential resolution for the S3 backend.

Resolution order:
    1. ``auth.env_file`` is loaded into ``os.environ`` (existing variables win)
    2. static keys from config, otherwise the default boto3 credential chain
    3. when ``auth.role_arn`` is set, STS AssumeRole using the credentials from (2)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from ..core.errors import AuthError

_log = logging.getLogger(__name__)


def _cfg_get(cfg: object | None, key: str, default=None):
    if cfg is None:
        return default
    if isinstance(cfg, dict):
        return cfg.get(key, default)
    return getattr(cfg, key, default)


def _redact(_: str | None) -> str:
    return "****"


def bootstrap_env_file(auth_cfg: Any) -> bool:
    """Load ``auth.env_file`` so boto3 can find AWS_* variables. Returns True when loaded."""
    env_file = _cfg_get(auth_cfg, "env_file")
    if not env_file:
        return False
    if not os.path.exists(env_file):
        raise AuthError(f".env file not found: {env_file}")
    loaded = load_dotenv(env_file, override=False)
    _log.debug("Loaded bootstrap environment from %s", env_file)
    return bool(loaded)


def static_credentials(auth_cfg: Any) -> Optional[Dict[str, str]]:
    access_key = _cfg_get(auth_cfg, "access_key_id")
    secret_key = _cfg_get(auth_cfg, "secret_access_key")
    if not access_key and not secret_key:
        return None
    if not access_key or not secret_key:
        raise AuthError("Both auth.access_key_id and auth.secret_access_key must be set together")
    creds = {"aws_access_key_id": access_key, "aws_secret_access_key": secret_key}
    token = _cfg_get(auth_cfg, "session_token")
    if token:
        creds["aws_session_token"] = token
    _log.debug("Using static AWS credentials %s=%s", access_key, _redact(secret_key))
    return creds


def assume_role(base: boto3.session.Session, role_arn: str, session_name: str, region: Optional[str] = None) -> Dict[str, str]:
    try:
        sts = base.client("sts", region_name=region)
        resp = sts.assume_role(RoleArn=role_arn, RoleSessionName=session_name)
    except (ClientError, BotoCoreError) as e:
        raise AuthError(f"Failed to assume role {role_arn}: {e}") from e
    creds = resp.get("Credentials") or {}
    if not creds.get("AccessKeyId"):
        raise AuthError(f"AssumeRole for {role_arn} returned no credentials")
    _log.info("Assumed role %s (session %s)", role_arn, session_name)
    return {
        "aws_access_key_id": creds["AccessKeyId"],
        "aws_secret_access_key": creds["SecretAccessKey"],
        "aws_session_token": creds["SessionToken"],
    }


def _new_session(region: Optional[str], credentials: Dict[str, str]) -> boto3.session.Session:
    try:
        return boto3.session.Session(region_name=region, **credentials)
    except BotoCoreError as e:
        # e.g. ProfileNotFound when AWS_PROFILE names a missing profile
        raise AuthError(f"Failed to create AWS session: {e}") from e


def build_session(auth_cfg: Any, *, region: Optional[str] = None) -> boto3.session.Session:
    """Build the boto3 session used for S3 calls."""
    bootstrap_env_file(auth_cfg)
    region = region or os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
    base = _new_session(region, static_credentials(auth_cfg) or {})

    role_arn = (_cfg_get(auth_cfg, "role_arn") or "").strip()
    if not role_arn:
        return base
    session_name = _cfg_get(auth_cfg, "role_session_name") or "docexport"
    return _new_session(region, assume_role(base, role_arn, session_name, region))


__all__ = [
    "bootstrap_env_file",
    "static_credentials",
    "assume_role",
    "build_session",
]
