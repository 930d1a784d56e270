import logging

import telnyx

from app.errors import ChannelDeliveryError
from config import settings

_LOGGER = logging.getLogger(__name__)

FROM_NUM = settings.TELNYX_FROM_NUMBER
TELNYX_API_KEY = settings.TELNYX_API_KEY
MESSAGING_PROFILE_ID = settings.TELNYX_MESSAGING_PROFILE_ID
if TELNYX_API_KEY:
    telnyx.api_key = TELNYX_API_KEY

def send_whatsapp(to: str | None, body: str) -> None:
    """Send through the Telnyx messaging profile bound to the WhatsApp sender."""
    if not TELNYX_API_KEY or not FROM_NUM:
        _LOGGER.info("[WHATSAPP] DEV mode: would send to %s: %s", to, body)
        return
    if not to:
        raise ChannelDeliveryError("WHATSAPP", "recipient phone number unknown")
    params = {"from_": FROM_NUM, "to": to, "text": body}
    if MESSAGING_PROFILE_ID:
        params["messaging_profile_id"] = MESSAGING_PROFILE_ID
    telnyx.Message.create(**params)
