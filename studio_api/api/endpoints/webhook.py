# studio_api/api/endpoints/webhook.py

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import OperationalError

from studio_api.api.dependencies import get_webhook_dispatcher
from studio_api.core.config import settings
from studio_api.core.errors import AuthenticationError, MalformedEventError, UpstreamUnavailableError
from studio_api.services.webhook_service import SIGNATURE_HEADER, WebhookDispatcher, parse_event, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhook",
    summary="Receive Mux video events",
    description=(
        "Signed callbacks from Mux. Answers 200 for handled and ignored events, "
        "400 for events missing their correlation ids, 401 for bad signatures "
        "and 500 when Mux should redeliver."
    ),
)
async def receive_webhook(request: Request, dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher)):
    # Signature covers the exact bytes Mux sent
    body = await request.body()
    try:
        verify_signature(
            body,
            request.headers.get(SIGNATURE_HEADER),
            settings.MUX_WEBHOOK_SECRET,
            tolerance_seconds=settings.MUX_WEBHOOK_TOLERANCE_SECONDS,
        )
    except AuthenticationError as e:
        logger.warning(f"Rejected webhook: {e.detail}")
        return PlainTextResponse(e.detail, status_code=e.status_code)

    try:
        event = parse_event(body)
        await run_in_threadpool(dispatcher.dispatch, event)
    except MalformedEventError as e:
        logger.warning(f"Malformed webhook event: {e.detail}")
        return PlainTextResponse(e.detail, status_code=e.status_code)
    except (UpstreamUnavailableError, OperationalError) as e:
        logger.error(f"Webhook failed, asking Mux to retry: {e}", exc_info=True)
        return PlainTextResponse("Webhook processing failed.", status_code=500)
    except Exception as e:
        # Redelivering would fail the same way; acknowledge so Mux stops retrying
        logger.error(f"Unexpected error handling webhook: {e}", exc_info=True)

    return PlainTextResponse("Webhook received", status_code=200)
