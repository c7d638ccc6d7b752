import logging
from typing import List

from fastapi import status

from dst_crm.core.exceptions import MailTransportError, ServiceError
from dst_crm.core.mailer import SmtpMailer

from .schemas import SendMailRequest, SendMailResponse, SendResult

logger = logging.getLogger(__name__)


async def relay(mailer: SmtpMailer, payload: SendMailRequest) -> SendMailResponse:
    """
    Send one discrete message per recipient so nobody sees the others.
    Partial failure still succeeds; only a run where every send fails is an error.
    """
    if not payload.bcc:
        raise ServiceError("No recipients", status.HTTP_400_BAD_REQUEST)

    results: List[SendResult] = []
    sent = 0
    for recipient in payload.bcc:
        try:
            info = await mailer.send(recipient, payload.subject, payload.text)
        except MailTransportError as e:
            logger.error("Mail to %s failed: %s", recipient, e)
            results.append(SendResult(recipient=recipient, status="failed", info=str(e)))
            continue
        sent += 1
        results.append(SendResult(recipient=recipient, status="sent", info=info))

    logger.info("Mail relay finished: %s of %s sent", sent, len(payload.bcc))
    if not sent:
        raise ServiceError(
            f"Sending failed for all {len(payload.bcc)} recipients",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return SendMailResponse(ok=True, count=sent, results=results)
