"""Lambda handler for AWS deployment.

Entry point for the slash command behind an API Gateway proxy integration.
The chat server POSTs a form-encoded body; the response is the JSON
envelope it renders in the channel.
"""

import base64
import binascii
import logging
import os
from functools import lru_cache
from typing import Any

from daylog.command import STATUS_BAD_REQUEST, CommandHandler, CommandResult
from daylog.config import load_config
from daylog.log import configure_json_logging, request_context
from daylog.token_store import resolve_token

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@lru_cache(maxsize=1)
def get_command_handler() -> CommandHandler:
    """Build the CommandHandler once per execution environment (cold start).

    Raises:
        ConfigError: If configuration or the token cannot be loaded.
        botocore.exceptions.ClientError: If Secrets Manager rejects the call.
    """
    config = load_config()
    if os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
        configure_json_logging(config["logging"]["level"])
    token = resolve_token(config)
    logger.info("Command handler initialised (tag=%s)", config["command"]["tag"])
    return CommandHandler.from_config(config, token)


def to_proxy_response(result: CommandResult) -> dict[str, Any]:
    """Convert a CommandResult to API Gateway proxy response format."""
    return {
        "statusCode": result.status_code,
        "headers": dict(JSON_HEADERS),
        "body": result.body,
    }


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler entry point.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        dict: API Gateway proxy response format
    """
    request_id = getattr(context, "aws_request_id", None)
    with request_context(request_id):
        try:
            command_handler = get_command_handler()
        except Exception:
            logger.exception("Failed to initialise command handler")
            raise

        body = event.get("body") or ""
        if event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body, validate=True)
            except (binascii.Error, ValueError):
                logger.warning("Rejected body with invalid base64 encoding")
                return to_proxy_response(CommandResult(STATUS_BAD_REQUEST))

        result = command_handler.handle(body)
        return to_proxy_response(result)
