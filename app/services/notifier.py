"""Multi-channel notification collaborator.

``send_notification`` delivers one payload to one channel (or ALL) and reports
per-channel success. A failing channel never raises out of this module; its
error is logged and returned in ``NotificationResult.errors``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from app.types.compliance_contract import (
    NotificationPayload,
    NotificationResult,
    ReminderChannel,
)
from app.utils import mailer, whatsapp
from db.models import InAppNotification
import db

_LOGGER = logging.getLogger(__name__)

ChannelSender = Callable[[NotificationPayload], Awaitable[None]]

# Transport hiccups (socket resets, SMTP disconnects) get one quick retry
# inside a single delivery attempt; the reminder-level retry policy lives in
# the dispatcher.
_transport_retry = retry(
    reraise=True,
    stop=stop_after_attempt(2),
    wait=wait_random_exponential(multiplier=0.5, max=5),
    retry=retry_if_exception_type(OSError),
)


async def _send_in_app(payload: NotificationPayload) -> None:
    async for s in db.get_session():
        s.add(
            InAppNotification(
                user_id=payload.user_id,
                type=payload.type,
                title=payload.title,
                message=payload.message,
                data=payload.data,
            )
        )
        await s.commit()


async def _send_whatsapp(payload: NotificationPayload) -> None:
    body = f"{payload.title}\n\n{payload.message}"
    await asyncio.to_thread(_transport_retry(whatsapp.send_whatsapp), payload.phone, body)


async def _send_email(payload: NotificationPayload) -> None:
    await asyncio.to_thread(
        _transport_retry(mailer.send_email), payload.email, payload.title, payload.message
    )


CHANNEL_SENDERS: Dict[ReminderChannel, ChannelSender] = {
    ReminderChannel.IN_APP: _send_in_app,
    ReminderChannel.WHATSAPP: _send_whatsapp,
    ReminderChannel.EMAIL: _send_email,
}


async def send_notification(payload: NotificationPayload) -> NotificationResult:
    result = NotificationResult()
    for channel in payload.targets():
        sender = CHANNEL_SENDERS[channel]
        try:
            await sender(payload)
            result.channels[channel] = True
        except Exception as exc:  # noqa: BLE001
            result.errors[channel] = str(exc)
            _LOGGER.error("%s notification to %s failed: %s", channel.value, payload.user_id, exc)
    result.success = any(result.channels.values())
    return result
