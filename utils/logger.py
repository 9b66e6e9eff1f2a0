"""Universal logfire setup for the application."""

import logging

import logfire

from fastapi import FastAPI
from logging import getLogger


def get_logfire(name: str = "MailCraft"):
    """Get a logger instance with optional context name."""
    return getLogger(name)


def configure_logging(token: str | None = None):
    """Configure logfire and route stdlib loggers through it.

    Without a write token, logs stay on the local console.
    """
    logfire.configure(token=token, service_name="mailcraft-dispatch", send_to_logfire="if-token-present")
    logging.basicConfig(level=logging.INFO, handlers=[logfire.LogfireLoggingHandler()])


def instrument_libraries(app: FastAPI):
    """Instrument the app and the HTTP client used by the completion provider."""
    logfire.instrument_fastapi(app)
    logfire.instrument_httpx()
