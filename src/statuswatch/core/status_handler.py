import logging
from typing import List

import orjson
from fastapi import Request, Response
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from statuswatch.contracts.target import Target
from statuswatch.core.batch_coordinator import BatchCoordinator

logger = logging.getLogger(__name__)

INFO_MESSAGE = "Status Engine Online. Send POST request with targets."


def parse_targets(body: bytes) -> List[Target]:
    """
    Extract the target batch from a raw request body.

    Anything unusable (empty or non-JSON body, a payload that is not an object,
    a missing or non-list ``targets``) yields an empty batch. Individual items
    that do not validate as a Target are dropped.
    """
    if not body or not body.strip():
        return []
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        logger.warning(f"Ignoring unparsable status request body: {e}")
        return []
    if not isinstance(payload, dict):
        logger.warning(f"Ignoring status request body of type {type(payload).__name__}")
        return []

    raw_targets = payload.get("targets") or []
    if not isinstance(raw_targets, list):
        logger.warning(f"Ignoring non-list targets of type {type(raw_targets).__name__}")
        return []

    targets = []
    for item in raw_targets:
        try:
            targets.append(Target.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping invalid target {item!r}: {e.error_count()} validation error(s)")
    return targets


class StatusHandler:
    """
    Handler for the status endpoint: turns an inbound request into a batch,
    resolves it and renders the snapshot.
    """

    def __init__(self, coordinator: BatchCoordinator):
        self.coordinator = coordinator

    async def handle_status(self, request: Request) -> Response:
        """
        Answer a status request.

        Args:
            request (Request): The incoming FastAPI request object.

        Returns:
            Response: The snapshot for a POST, an informational message for any other method.
        """
        if request.method != "POST":
            return ORJSONResponse({"message": INFO_MESSAGE})

        targets = parse_targets(await request.body())
        if not targets:
            return ORJSONResponse({})

        results = await self.coordinator.resolve_batch(targets)
        return ORJSONResponse(
            {target_id: result.to_wire() for target_id, result in results.items()}
        )
