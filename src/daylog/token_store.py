"""Command token resolution from config or AWS Secrets Manager."""

import json
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from daylog.config import ConfigError

logger = logging.getLogger(__name__)


def fetch_secret_token(
    secret_id: str,
    key: str = "token",
    region: Optional[str] = None,
    client: Any = None,
) -> str:
    """Read the command token from a Secrets Manager secret.

    The secret may be a JSON object (the token is read from ``key``) or a
    plain string holding the token itself.

    Args:
        secret_id: Secret name or ARN.
        key: Field holding the token when the secret is a JSON object.
        region: AWS region for the client.
        client: Pre-built secretsmanager client (tests, shared sessions).

    Returns:
        The token string.

    Raises:
        ConfigError: If the secret is empty, malformed, or lacks ``key``.
        botocore.exceptions.ClientError: If Secrets Manager rejects the call.
    """
    if client is None:
        client = boto3.client("secretsmanager", region_name=region)

    try:
        response = client.get_secret_value(SecretId=secret_id)
    except ClientError as e:
        logger.error(
            "Failed to read secret %s: %s",
            secret_id,
            e.response.get("Error", {}).get("Code", "Unknown"),
        )
        raise

    secret = response.get("SecretString")
    if secret is None:
        raise ConfigError(f"Secret {secret_id} has no SecretString")

    stripped = secret.strip()
    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Secret {secret_id} is not valid JSON: {e}") from e
        token = data.get(key)
        if not isinstance(token, str):
            raise ConfigError(f"Secret {secret_id} has no string field {key!r}")
    else:
        token = stripped

    if not token:
        raise ConfigError(f"Secret {secret_id} holds an empty token")
    return token


def resolve_token(config: dict[str, Any], client: Any = None) -> str:
    """Return the command token, preferring an inline value over a secret.

    Raises:
        ConfigError: If neither command.token nor command.token_secret_id is set.
    """
    command = config.get("command", {})
    if command.get("token"):
        return command["token"]

    secret_id = command.get("token_secret_id")
    if not secret_id:
        raise ConfigError(
            "Missing command token. Set DAYLOG_COMMAND_TOKEN or DAYLOG_TOKEN_SECRET_ID"
        )

    logger.info("Loading command token from Secrets Manager (%s)", secret_id)
    return fetch_secret_token(
        secret_id,
        key=command.get("token_secret_key", "token"),
        region=config.get("aws", {}).get("region"),
        client=client,
    )
