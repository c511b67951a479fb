"""
Gunicorn configuration for the Daily Quiz API.

    gunicorn -c deploy/gunicorn.conf.py dailyquiz.main:app

With the default SQLite store every worker shares one database file and
writers queue on its lock; use PostgreSQL for larger deployments.
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

# Logging ("-" is stdout/stderr)
accesslog = os.environ.get("GUNICORN_ACCESS_LOG", "-")
errorlog = os.environ.get("GUNICORN_ERROR_LOG", "-")
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "dailyquiz"

daemon = False
pidfile = "/tmp/dailyquiz-gunicorn.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"Daily Quiz API ready with {workers} {worker_class} worker(s) on {bind}")
