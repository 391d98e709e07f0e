import logging
import time
from typing import Awaitable, Callable

from aiohttp import web

from rserve.config import RserveConfig
from rserve.exceptions import DeliveryError, ValidationError
from rserve.utils.keys import load_public_key
from rserve.utils.url_signer import UrlVerifier

from .constants import BLOB_STORE_KEY, CONFIG_KEY, GATE_KEY
from .gate import RequestGate
from .routes import files
from .services.blob import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def access_log_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    # The query string carries the signature, so only the path is logged.
    start = time.monotonic()
    response = await handler(request)
    logger.info(
        "%s %s %d (%.1f ms)",
        request.method,
        request.path,
        response.status,
        (time.monotonic() - start) * 1000,
    )
    return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    try:
        return await handler(request)
    except ValidationError as err:
        logger.info(
            "Rejected %s %s: %s (%s)",
            request.method,
            request.path,
            err,
            err.result.value,
        )
        return web.Response(status=err.status, text=str(err))
    except DeliveryError:
        logger.exception("Failed serving %s %s", request.method, request.path)
        return web.Response(status=DeliveryError.status, text="Internal server error")


def create_app(
    config: RserveConfig, blob_store: BlobStore | None = None
) -> web.Application:
    """Create the verifier application.

    Raises ConfigurationError if the server settings are incomplete or the
    public key cannot be decoded.
    """
    config.require_server()
    verifier = UrlVerifier(load_public_key(config.public_key))
    gate = RequestGate(verifier, remote=config.remote if config.bind_remote else None)
    if blob_store is None:
        blob_store = LocalBlobStore({config.remote: config.require_storage_root()})

    app = web.Application(middlewares=[access_log_middleware, error_middleware])
    app[CONFIG_KEY] = config
    app[GATE_KEY] = gate
    app[BLOB_STORE_KEY] = blob_store

    app.add_routes(files.routes)
    return app


def run(config: RserveConfig) -> None:
    app = create_app(config)
    logger.info(
        "Serving remote '%s' on %s:%d", config.remote, config.listen_host, config.port
    )
    # aiohttp's own access log would record the signature in the query string.
    web.run_app(
        app, host=config.listen_host, port=config.port, access_log=None, print=None
    )
