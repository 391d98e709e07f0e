"""Application keys shared by the server app and its routes."""

from aiohttp import web

from rserve.config import RserveConfig
from rserve.server.gate import RequestGate
from rserve.server.services.blob import BlobStore

CONFIG_KEY = web.AppKey("config", RserveConfig)
GATE_KEY = web.AppKey("gate", RequestGate)
BLOB_STORE_KEY = web.AppKey("blob_store", BlobStore)
