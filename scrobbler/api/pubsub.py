"""Pub/Sub push endpoint that runs the scrobble pipeline.

A 2xx answer acknowledges the message. Unhandled pipeline errors surface as
HTTP 500, which makes Pub/Sub redeliver it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from scrobbler.schemas.album import PubSubPushEnvelope
from scrobbler.services.pipeline import ScrobblePipeline, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/pubsub", tags=["pubsub"])


@router.post("/scrobble", status_code=204, summary="Scrobble the album mapped to a scanned tag")
async def scrobble_push(
    envelope: PubSubPushEnvelope,
    pipeline: ScrobblePipeline = Depends(get_pipeline),
):
    if envelope.message and envelope.message.message_id:
        logger.info("Handling Pub/Sub message %s", envelope.message.message_id)
    outcome = await pipeline.handle_message(envelope.payload)
    logger.debug("Pipeline finished: %s", outcome.value)
    return Response(status_code=204)
