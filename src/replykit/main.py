"""
Application factory.

Wires logging, the request-id middleware and the error envelope handlers onto a FastAPI
app. Routes are added by the caller, typically through `app.state.dispatcher.endpoint()`.
"""

from fastapi import FastAPI

from replykit.api.error_handlers import register_exception_handlers
from replykit.api.response_helper import Dispatcher
from replykit.config.settings import Settings, get_settings
from replykit.core.logging import RequestIDMiddleware, setup_logging


def create_app(settings: Settings | None = None, dispatcher: Dispatcher | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    dispatcher = dispatcher or Dispatcher(settings=settings)

    app = FastAPI(title=settings.SERVICE_NAME, debug=False)
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app, dispatcher)
    app.state.dispatcher = dispatcher
    return app
