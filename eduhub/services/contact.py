"""联系表单。

消息只写入日志，不对外发送邮件。
"""

import logging
from typing import Optional

from eduhub.errors import ValidationError

logger = logging.getLogger(__name__)


def submit_contact(name: Optional[str], email: Optional[str], message: Optional[str]) -> dict:
    if not (name and name.strip()) or not (email and email.strip()) or not (message and message.strip()):
        raise ValidationError("All fields are required")

    logger.info("Contact message from %s <%s>: %s", name.strip(), email.strip(), message.strip())
    return {"success": True, "message": "Message sent successfully!"}
