"""
Gunicorn configuration for the VitaTrack API.

Env vars that override defaults:
  PORT     — TCP port to bind (default: 8000)
  WORKERS  — number of worker processes (default: 2)
  TIMEOUT  — seconds before a silent worker is killed (default: 60)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Day initialization is safe across workers: rows are insert-or-ignore.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

timeout = int(os.environ.get("TIMEOUT", "60"))

# stdout only; application logs share the stream via vitatrack.core.logging
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
