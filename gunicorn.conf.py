"""Gunicorn configuration for the Opening Trainer Engine Service."""

from trainer_engine.config import settings

wsgi_app = "trainer_engine.main:app"

bind = f"{settings.host}:{settings.port}"
backlog = 64

# One engine process per service; a second worker would start a second engine
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"

# /move-quality runs two searches back to back
timeout = int(2 * settings.engine_request_timeout + settings.engine_init_timeout) + 10
graceful_timeout = int(2 * settings.engine_quit_timeout) + 10

accesslog = "-"
errorlog = "-"
loglevel = "debug" if settings.debug else "info"

proc_name = "opening-trainer-engine"
