"""Application keys for type-safe app configuration access."""

from aiohttp import web

from slipway.config import Project
from slipway.handlers import HandlerChain, ServeContext

project_key = web.AppKey("project", Project)
context_key = web.AppKey("context", ServeContext)
chain_key = web.AppKey("chain", HandlerChain)
