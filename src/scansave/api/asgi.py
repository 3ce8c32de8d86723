"""ASGI entrypoint for the ScanSave API."""

from scansave.api.app import create_app
from scansave.containers import build_container

app = create_app(build_container())
