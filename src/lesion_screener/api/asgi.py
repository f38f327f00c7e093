"""ASGI entrypoint for the lesion screener API."""

from lesion_screener.api.app import create_app
from lesion_screener.containers import build_container

app = create_app(build_container())
