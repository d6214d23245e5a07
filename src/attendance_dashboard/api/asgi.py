"""ASGI entrypoint for the attendance dashboard API."""

from attendance_dashboard.api.app import create_app
from attendance_dashboard.containers import build_container

app = create_app(build_container())
