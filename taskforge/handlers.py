"""Built-in job handlers.

Both simulate their I/O with a sleep; the durations come from config so tests
can shrink them.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from . import config
from .errors import ProcessingError
from .log import get_logger
from .models import JobType

logger = get_logger(__name__)


async def send_email(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Payload: {"to": str, "subject": str, "content": str}"""
    to = payload.get("to")
    if not to:
        raise ProcessingError("email payload is missing 'to'")

    logger.info("sending email", to=to, subject=payload.get("subject"))
    await asyncio.sleep(config.EMAIL_SEND_SECONDS)
    logger.info("email sent", to=to)
    return {"delivered": True, "to": to}


async def generate_report(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Payload: {"user_id": str, "report_type": str}"""
    user_id = payload.get("user_id")
    report_type = payload.get("report_type")
    if user_id is None or not report_type:
        raise ProcessingError("report payload needs 'user_id' and 'report_type'")

    logger.info("generating report", user_id=user_id, report_type=report_type)
    await asyncio.sleep(config.REPORT_GENERATE_SECONDS)
    logger.info("report generated", user_id=user_id, report_type=report_type)
    return {
        "completed": True,
        "user_id": user_id,
        "report_type": report_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


BUILTIN_HANDLERS = {
    JobType.EMAIL_SEND.value: send_email,
    JobType.REPORT_GENERATE.value: generate_report,
}


def register_builtin_handlers(queue) -> None:
    for job_type, handler in BUILTIN_HANDLERS.items():
        queue.register_handler(job_type, handler)
