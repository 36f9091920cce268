"""Known Mini App actions: payload schema + notification handler per action.

Handlers reply to the originating message using MarkdownV2, so every value
coming from the Mini App goes through escape_markdown() first.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping

from pydantic import BaseModel
from telegram import Update
from telegram.constants import ParseMode

from .schemas import (
    CallEndedPayload, CallInitiatedPayload, SmsSentPayload,
    UserAddedPayload, UserRemovedPayload,
)


_MARKDOWN_SPECIAL = re.compile(r"([\\_*\[\]()~`>#+\-=|{}.!])")


def escape_markdown(text: object) -> str:
    """Backslash-escape MarkdownV2 control characters in text."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", str(text))


@dataclass(frozen=True)
class DispatchMeta:
    server_timestamp: str
    client_timestamp: str | None = None


Handler = Callable[[Update, BaseModel, DispatchMeta], Awaitable[None]]


@dataclass(frozen=True)
class ActionContract:
    schema: type[BaseModel]
    handler: Handler


def format_duration(seconds: float | None) -> str:
    """Format a call duration as m:ss, or n/a when absent or zero."""
    if not seconds:
        return "n/a"
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"


async def _reply(update: Update, lines: list[str | None]) -> None:
    text = "\n".join(line for line in lines if line)
    await update.effective_message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


def _received(meta: DispatchMeta) -> str:
    return f"• Received: {escape_markdown(meta.server_timestamp)}"


async def handle_call_initiated(update: Update, payload: CallInitiatedPayload, meta: DispatchMeta) -> None:
    await _reply(update, [
        "📞 *Call initiated*",
        f"• To: {escape_markdown(payload.to or 'unknown')}",
        f"• SID: `{escape_markdown(payload.call_sid)}`",
        f"• Status: {escape_markdown(payload.status or 'pending')}",
        _received(meta),
    ])


async def handle_call_ended(update: Update, payload: CallEndedPayload, meta: DispatchMeta) -> None:
    icon = "✅" if payload.status == "completed" else "❌"
    await _reply(update, [
        f"{icon} *Call {escape_markdown(payload.status)}*",
        f"• SID: `{escape_markdown(payload.call_sid)}`",
        f"• Duration: {escape_markdown(format_duration(payload.duration))}",
        _received(meta),
    ])


async def handle_sms_sent(update: Update, payload: SmsSentPayload, meta: DispatchMeta) -> None:
    await _reply(update, [
        "📱 *SMS sent*",
        f"• To: {escape_markdown(payload.phone_number)}",
        f"• Message ID: `{escape_markdown(payload.message_id)}`" if payload.message_id else None,
        _received(meta),
    ])


async def handle_user_added(update: Update, payload: UserAddedPayload, meta: DispatchMeta) -> None:
    await _reply(update, [
        "👤 *User added*",
        f"• ID: `{escape_markdown(payload.user_id)}`",
        f"• Name: {escape_markdown(payload.name)}" if payload.name else None,
        f"• Username: @{escape_markdown(payload.username)}" if payload.username else None,
        _received(meta),
    ])


async def handle_user_removed(update: Update, payload: UserRemovedPayload, meta: DispatchMeta) -> None:
    await _reply(update, [
        "🚫 *User removed*",
        f"• ID: `{escape_markdown(payload.user_id)}`",
        _received(meta),
    ])


# Read-only after import.
ACTIONS: Mapping[str, ActionContract] = MappingProxyType({
    "call_initiated": ActionContract(CallInitiatedPayload, handle_call_initiated),
    "call_ended": ActionContract(CallEndedPayload, handle_call_ended),
    "sms_sent": ActionContract(SmsSentPayload, handle_sms_sent),
    "user_added": ActionContract(UserAddedPayload, handle_user_added),
    "user_removed": ActionContract(UserRemovedPayload, handle_user_removed),
})
