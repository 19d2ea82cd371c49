"""Gunicorn configuration for the fulfillment service.

Usage:
    gunicorn fulfillment.main:app -c gunicorn_conf.py
"""

import multiprocessing
import os

# ── Server Socket ─────────────────────────────
bind = f"0.0.0.0:{os.getenv('SERVICE_PORT', '8001')}"

# ── Worker Processes ──────────────────────────
# Each worker holds its own connection pool; keep the count modest
workers = int(os.getenv("GUNICORN_WORKERS", min(multiprocessing.cpu_count() + 1, 5)))
worker_class = "uvicorn.workers.UvicornWorker"
worker_tmp_dir = os.getenv("GUNICORN_WORKER_TMP_DIR", "/dev/shm")

# ── Timeouts ──────────────────────────────────
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

# ── Logging ───────────────────────────────────
# structlog renders application lines; gunicorn only reports errors
accesslog = None
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

proc_name = os.getenv("SERVICE_NAME", "fulfillment_service")

# ── Server Mechanics ─────────────────────────
# Each worker imports the app itself and builds its own engine
preload_app = False
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "100"))
