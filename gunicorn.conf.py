# =============================================================================
# GUNICORN CONFIGURATION
# CampusFix Backend - Production WSGI Server
# =============================================================================

import multiprocessing
import os

# =============================================================================
# SERVER SOCKET
# =============================================================================

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

wsgi_app = "campusfix_backend.wsgi:application"

# =============================================================================
# WORKER PROCESSES
# =============================================================================

# Recommended: (2 x num_cores) + 1
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))

worker_class = os.getenv("GUNICORN_WORKER_CLASS", "sync")

# Restart workers periodically
max_requests = 1000
max_requests_jitter = 100

# Worker timeout (seconds)
timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))

graceful_timeout = 30

keepalive = 5

# =============================================================================
# SECURITY
# =============================================================================

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# =============================================================================
# SERVER MECHANICS
# =============================================================================

# Container manages the process
daemon = False
pidfile = None

chdir = os.getenv("GUNICORN_CHDIR", os.path.dirname(os.path.abspath(__file__)))

# =============================================================================
# LOGGING
# =============================================================================

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# %(D)s is the request time in microseconds
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

capture_output = True
enable_stdio_inheritance = True

# =============================================================================
# PROCESS NAMING
# =============================================================================

proc_name = "campusfix"


def worker_abort(worker):
    """Called when a worker receives SIGABRT (timeout)."""
    worker.log.warning(f"Worker {worker.pid} aborted after timeout")
