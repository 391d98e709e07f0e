"""Handler that serves files behind signed URLs."""

import logging
import mimetypes

from aiohttp import web

from rserve.exceptions import BlobStoreError, MultipleObjects, NotFound
from rserve.server.constants import BLOB_STORE_KEY, CONFIG_KEY, GATE_KEY
from rserve.server.services.blob import ResolutionKind

logger = logging.getLogger(__name__)
routes = web.RouteTableDef()

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@routes.route("*", "/{tail:.*}")
async def handle_file(request: web.Request) -> web.StreamResponse:
    """Serve a single file if the request carries a valid signature.

    Endpoint: GET|HEAD /<path>
    Query Params: expires_at, signature
    """
    config = request.app[CONFIG_KEY]
    gate = request.app[GATE_KEY]
    blob_store = request.app[BLOB_STORE_KEY]

    validated = gate.validate(request.method, request.path, request.query)

    resolution = await blob_store.resolve(config.remote, validated.path)
    if resolution.kind == ResolutionKind.NOT_FOUND:
        raise NotFound()
    if resolution.kind == ResolutionKind.MULTIPLE:
        raise MultipleObjects()

    content_type, _ = mimetypes.guess_type(validated.path)
    response = web.StreamResponse(status=200)
    response.content_type = content_type or DEFAULT_CONTENT_TYPE
    response.content_length = resolution.size
    await response.prepare(request)

    if validated.head_only:
        return response

    logger.info("Serving %s:%s (%d bytes)", config.remote, validated.path, resolution.size)
    try:
        await blob_store.stream(config.remote, validated.path, response.write)
    except (OSError, BlobStoreError):
        # Headers are already sent, so the status cannot change.
        logger.exception("Failed streaming %s:%s", config.remote, validated.path)
        response.force_close()
    return response
