"""
Gunicorn WSGI Server Configuration

Sync workers serve one request per worker at a time; MongoDB calls are bounded by
the driver timeouts configured in ``storefront.config.settings``, which also bounds
how long a worker can block on a single request.
"""

import multiprocessing
import os

# =============================================================================
# SERVER SOCKET CONFIGURATION
# =============================================================================

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# =============================================================================
# WORKER PROCESS CONFIGURATION
# =============================================================================

# (2 * CPU_COUNT) + 1, between 2 and 8
workers = int(os.getenv("GUNICORN_WORKERS", max(2, min(8, (2 * multiprocessing.cpu_count()) + 1))))
worker_class = "sync"

# Worker recycling
max_requests = 1000
max_requests_jitter = 500

# =============================================================================
# TIMEOUT CONFIGURATION
# =============================================================================

timeout = int(os.getenv("GUNICORN_TIMEOUT", "30"))
graceful_timeout = 30
keepalive = 5

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
capture_output = True

# =============================================================================
# SERVER HOOKS
# =============================================================================

# MongoClient is not fork-safe; each worker builds its own application
preload_app = False


def on_starting(server):
    server.log.info("Gunicorn master process starting with %d workers", workers)


def post_fork(server, worker):
    worker.log.info("Worker %s ready to handle requests", worker.pid)


def worker_abort(worker):
    worker.log.error("Worker %s aborted", worker.pid)
