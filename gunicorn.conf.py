"""
Gunicorn configuration for the Lumora API.

Usage:
    gunicorn lumora.main:app -c gunicorn.conf.py

The forensics worker is a separate process (scripts/run_forensics_worker.py),
so web workers only serve verification and admin traffic.
"""

import multiprocessing
import os

bind = os.getenv("LUMORA_BIND", "0.0.0.0:8000")

# Verification is short, I/O-bound DB work: CPU cores * 2 + 1
workers = int(os.getenv("WEB_CONCURRENCY", str(multiprocessing.cpu_count() * 2 + 1)))

worker_class = "uvicorn.workers.UvicornWorker"

# Admin hotspot analysis waits on the risk oracle
timeout = int(os.getenv("GUNICORN_TIMEOUT", "90"))
graceful_timeout = 30
keepalive = 5

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
