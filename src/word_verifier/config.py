"""Configuration management for the word verifier.

Each setting is read from the environment first, then from the JSON files
in .config/ (secrets before public values), then falls back to a default.
Provider API keys may also live in one Secrets Manager secret.
"""

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote_plus

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

# Local dev only, no-op in Lambda
load_dotenv()

CONFIG_DIR = Path(__file__).resolve().parents[2] / ".config"


def _read_json(filename: str) -> dict:
    path = CONFIG_DIR / filename
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return {key.lower(): value for key, value in json.load(f).items()}


# Searched in order after the environment
_FILE_SOURCES: list[dict] = [
    _read_json("config.secrets.dev.json"),
    _read_json("config.dev.json"),
]


def setting(key: str, default: str = "") -> str:
    """Look up a setting; empty environment values count as unset."""
    value = os.getenv(key.upper())
    if value:
        return value

    for source in _FILE_SOURCES:
        if key.lower() in source:
            return str(source[key.lower()])

    return default


@lru_cache(maxsize=4)
def _secret_values(secret_name: str, region: str) -> dict:
    """Fetch and decode a JSON secret once per process. Missing secrets read as empty."""
    client = boto3.client("secretsmanager", region_name=region)
    try:
        response = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceNotFoundException":
            return {}
        raise
    return json.loads(response["SecretString"])


def _database_url() -> str:
    """DATABASE_URL, or a PostgreSQL URL assembled from the DB_* settings."""
    url = setting("DATABASE_URL")
    if url or not setting("DB_HOST"):
        return url

    user = setting("DB_USER", "wat")
    password = quote_plus(setting("DB_PASSWORD"))
    host = setting("DB_HOST")
    port = setting("DB_PORT", "5432")
    database = setting("DB_NAME", "wat")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{database}"


@dataclass
class Config:
    """Service configuration loaded from env vars or JSON files."""

    # AWS
    aws_region: str = setting("AWS_REGION", "us-east-1")

    # Database
    database_url: str = _database_url()
    sql_batch_limit: int = int(setting("SQL_BATCH_LIMIT", "500"))
    pending_timeout_minutes: int = int(setting("PENDING_TIMEOUT_MINUTES", "60"))

    # SQS
    sqs_queue_url: str = setting("SQS_QUEUE_URL", "")

    # AI providers
    ai_gateway_url: str = setting("AI_GATEWAY_URL", "")
    ai_request_timeout: float = float(setting("AI_REQUEST_TIMEOUT", "120"))
    ai_max_tokens: int = int(setting("AI_MAX_TOKENS", "8192"))
    ai_temperature: float = float(setting("AI_TEMPERATURE", "0.1"))
    openai_api_key: str = setting("OPENAI_API_KEY", "")
    anthropic_api_key: str = setting("ANTHROPIC_API_KEY", "")
    mistral_api_key: str = setting("MISTRAL_API_KEY", "")
    qwen_api_key: str = setting("QWEN_API_KEY", "")
    google_api_key: str = setting("GOOGLE_API_KEY", "")
    provider_secret_name: str = setting("PROVIDER_SECRET_NAME", "")

    # Client
    wat_api_url: str = setting("WAT_API_URL", "http://localhost:8787")
    poll_interval_seconds: float = float(setting("POLL_INTERVAL_SECONDS", "5"))

    def api_key(self, env_key: str) -> str:
        """
        Get a provider API key, falling back to Secrets Manager.

        Args:
            env_key: Setting name, e.g. "OPENAI_API_KEY".

        Returns:
            The key, or an empty string if it is not configured anywhere.
        """
        value = getattr(self, env_key.lower(), "")
        if value:
            return value

        if self.provider_secret_name:
            secret = _secret_values(self.provider_secret_name, self.aws_region)
            return str(secret.get(env_key, ""))

        return ""

    def validate(self) -> None:
        """Raise ValueError for settings the services cannot run without."""
        if not self.database_url:
            raise ValueError("DATABASE_URL (or DB_HOST) is required")

        if not self.sqs_queue_url:
            raise ValueError("SQS_QUEUE_URL is required")

        if self.sql_batch_limit < 1:
            raise ValueError("SQL_BATCH_LIMIT must be a positive integer")


config = Config()
