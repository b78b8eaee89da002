"""
Gunicorn Configuration

Production settings for the award progression API.

Review serialisation is per process; with more than one worker, cross-worker
races on the same school are caught by the School version column (409) and,
on PostgreSQL, by SELECT ... FOR UPDATE.
"""
import os
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 60
keepalive = 5

# Lifespan shutdown drains queued review notifications
graceful_timeout = int(os.environ.get("NOTIFICATION_TIMEOUT_SECONDS", "5")) + 10

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "award-progression"

# Server mechanics
daemon = False
pidfile = "/tmp/award-progression.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

wsgi_app = "award_backend.main:app"
