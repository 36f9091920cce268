"""Verification and routing of web_app_data messages sent by the Mini App.

Pipeline per message:
    JSON decode -> envelope -> initData signature -> user -> sender match
    -> action lookup -> payload schema -> handler

Each stage returns (value, failure) instead of raising. Every rejection
is logged with its cause and answered with one fixed message; the cause itself
never reaches the user.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ValidationError
from telegram import Update

from .actions import ACTIONS, ActionContract, DispatchMeta
from .schemas import Envelope, WebAppUser, validate_envelope
from .web_auth import InitDataVerifier, InvalidUserPayload, MissingUser, decode_user, parse_init_data


class Rejection(Enum):
    MALFORMED_JSON = "❌ Unable to process data from the mini app"
    INVALID_ENVELOPE = "❌ Received malformed payload from the mini app. Please try again."
    INVALID_SESSION = "❌ Invalid mini app session. Please reopen the mini app from the bot."
    MISSING_USER = "❌ Mini app payload missing user information."
    INVALID_USER = "❌ Mini app payload has invalid user data."
    SESSION_MISMATCH = "❌ Mini app session mismatch. Please reopen the mini app from the bot."
    INVALID_PAYLOAD = '❌ Mini app sent invalid data for action "{action}". Please try again.'
    UNHANDLED = "❌ Error processing WebApp data"

    def user_message(self, action: str | None = None) -> str:
        if self is Rejection.INVALID_PAYLOAD:
            return self.value.format(action=action)
        return self.value


class DispatchStatus(Enum):
    DELIVERED = "delivered"
    REJECTED = "rejected"
    IGNORED = "ignored"


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    reason: Rejection | None = None
    action: str | None = None


@dataclass(frozen=True)
class _Failure:
    reason: Rejection
    detail: str
    action: str | None = None


def _summarize(error: ValidationError) -> str:
    """Compact one-line summary of a pydantic error, for logs only."""
    return ", ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '(root)'}: {err['msg']}"
        for err in error.errors()
    )


def server_timestamp(date: datetime | None) -> str:
    """ISO-8601 UTC timestamp with milliseconds, e.g. 2024-05-01T12:00:00.000Z."""
    if date is None:
        date = datetime.now(timezone.utc)
    elif date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _reject_constant(name: str):
    """Refuse NaN and Infinity, which standard JSON does not allow."""
    raise ValueError(f"non-standard JSON constant {name}")


def decode_envelope(raw: str) -> tuple[Envelope | None, _Failure | None]:
    try:
        document = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError) as e:
        return None, _Failure(Rejection.MALFORMED_JSON, f"invalid JSON: {e}")
    try:
        return validate_envelope(document), None
    except ValidationError as e:
        return None, _Failure(Rejection.INVALID_ENVELOPE, _summarize(e))


def authenticate(
    verifier: InitDataVerifier, init_data: str, sender_id: int,
) -> tuple[WebAppUser | None, _Failure | None]:
    """Check the initData signature and that it belongs to the message sender."""
    if not verifier.verify(init_data):
        return None, _Failure(Rejection.INVALID_SESSION, "signature check failed")
    params = parse_init_data(init_data)
    if not verifier.is_fresh(params):
        return None, _Failure(Rejection.INVALID_SESSION, f"auth_date {params.get('auth_date')!r} expired")

    try:
        user = decode_user(params.get("user"))
    except MissingUser as e:
        return None, _Failure(Rejection.MISSING_USER, str(e))
    except InvalidUserPayload as e:
        return None, _Failure(Rejection.INVALID_USER, str(e))

    if user.id != sender_id:
        return None, _Failure(
            Rejection.SESSION_MISMATCH,
            f"mini app user {user.id} != telegram user {sender_id}",
        )
    return user, None


def validate_payload(
    envelope: Envelope, contract: ActionContract,
) -> tuple[BaseModel | None, _Failure | None]:
    raw = envelope.payload if envelope.payload is not None else {}
    try:
        return contract.schema.model_validate(raw), None
    except ValidationError as e:
        return None, _Failure(Rejection.INVALID_PAYLOAD, _summarize(e), envelope.action)


class WebAppDataDispatcher:
    def __init__(self, verifier: InitDataVerifier, actions: Mapping[str, ActionContract] = ACTIONS):
        self.verifier = verifier
        self.actions = actions

    async def dispatch(self, update: Update) -> DispatchResult:
        """Process one web_app_data message. Never raises."""
        try:
            return await self._run(update)
        except Exception as e:
            print(f"[WebAppData] Error handling WebApp data: {e!r}")
            await self._safe_reply(update, Rejection.UNHANDLED.user_message())
            return DispatchResult(DispatchStatus.REJECTED, Rejection.UNHANDLED)

    async def _run(self, update: Update) -> DispatchResult:
        message = update.effective_message

        envelope, failure = decode_envelope(message.web_app_data.data)
        if failure:
            return await self._reject(update, failure)

        _, failure = authenticate(self.verifier, envelope.init_data, update.effective_user.id)
        if failure:
            return await self._reject(update, failure)

        contract = self.actions.get(envelope.action)
        if contract is None:
            print(f"[WebAppData] Ignoring unhandled action {envelope.action!r}")
            return DispatchResult(DispatchStatus.IGNORED, action=envelope.action)

        payload, failure = validate_payload(envelope, contract)
        if failure:
            return await self._reject(update, failure)

        meta = DispatchMeta(
            server_timestamp=server_timestamp(message.date),
            client_timestamp=envelope.timestamp,
        )
        await contract.handler(update, payload, meta)
        return DispatchResult(DispatchStatus.DELIVERED, action=envelope.action)

    @staticmethod
    async def _reject(update: Update, failure: _Failure) -> DispatchResult:
        where = f" (action {failure.action!r})" if failure.action else ""
        print(f"[WebAppData] Rejected {failure.reason.name.lower()}{where}: {failure.detail}")
        await update.effective_message.reply_text(failure.reason.user_message(failure.action))
        return DispatchResult(DispatchStatus.REJECTED, failure.reason, failure.action)

    @staticmethod
    async def _safe_reply(update: Update, text: str) -> None:
        try:
            await update.effective_message.reply_text(text)
        except Exception as e:
            print(f"[WebAppData] Failed to send error reply: {e!r}")
