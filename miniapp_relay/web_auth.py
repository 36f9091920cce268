"""Telegram Mini App initData HMAC-SHA256 validation.

Validates the initData string the Telegram WebApp SDK embeds in every event
the Mini App sends, and decodes the user it was issued to. Pure functions,
no I/O.

Reference: https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from urllib.parse import parse_qsl

from pydantic import ValidationError

from .schemas import WebAppUser


class InvalidUserPayload(ValueError):
    """The ``user`` field of initData is not a valid Telegram user object."""


class MissingUser(InvalidUserPayload):
    """initData carries no ``user`` field at all."""


def verify_init_data(init_data: str, bot_token: str) -> bool:
    """Return True if init_data was signed by Telegram for this bot token.

    Never raises: anything malformed simply fails verification.
    """
    if not isinstance(init_data, str) or not init_data:
        return False

    params = parse_init_data(init_data)
    received_hash = params.pop("hash", "")
    if not received_hash:
        return False

    data_check_string = _build_data_check_string(params)
    expected_hash = _compute_hmac(bot_token, data_check_string)
    return hmac.compare_digest(received_hash.encode(), expected_hash.encode())


def parse_init_data(init_data: str) -> dict[str, str]:
    """Parse the initData query string into a flat dict (last value wins)."""
    result: dict[str, str] = {}
    for key, value in parse_qsl(init_data, keep_blank_values=True):
        result[key] = value
    return result


def decode_user(raw: str | None) -> WebAppUser:
    """Decode the JSON ``user`` field of verified initData."""
    if not raw:
        raise MissingUser("initData has no user field")
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidUserPayload(f"user is not valid JSON: {e}") from e
    try:
        return WebAppUser.model_validate(data)
    except ValidationError as e:
        raise InvalidUserPayload(f"user does not match schema: {e.error_count()} error(s)") from e


def _build_data_check_string(params: dict[str, str]) -> str:
    """Build the sorted newline-separated data-check-string for HMAC."""
    return "\n".join(sorted(f"{k}={v}" for k, v in params.items()))


def _compute_hmac(bot_token: str, data_check_string: str) -> str:
    """Compute HMAC-SHA256 using the bot token as the secret key.

    The secret key is HMAC-SHA256("WebAppData", bot_token).
    """
    secret_key = hmac.new(
        b"WebAppData", bot_token.encode(), hashlib.sha256,
    ).digest()
    return hmac.new(
        secret_key, data_check_string.encode(), hashlib.sha256,
    ).hexdigest()


@dataclass(frozen=True)
class InitDataVerifier:
    """initData verifier bound to one bot token.

    max_age_seconds of 0 disables the auth_date freshness check.
    """

    bot_token: str
    max_age_seconds: int = 0

    def verify(self, init_data: str) -> bool:
        return verify_init_data(init_data, self.bot_token)

    def is_fresh(self, params: dict[str, str], now: float | None = None) -> bool:
        if self.max_age_seconds <= 0:
            return True
        try:
            auth_date = int(params.get("auth_date", ""))
        except ValueError:
            return False
        if now is None:
            now = time.time()
        return now - auth_date <= self.max_age_seconds
