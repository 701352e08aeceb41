"""Entry point for ``python -m container_imagegen``."""

from container_imagegen.cli import app

app(prog_name="imagegen")
