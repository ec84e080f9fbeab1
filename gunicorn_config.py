"""
Gunicorn configuration for production deployment.

Generation requests hold a connection open for minutes while parts are
produced, so workers are threaded and the timeout is long.

Usage:
    gunicorn -c gunicorn_config.py app:app
"""

import os
import multiprocessing

from src.longstory.config import get_env_int, get_env_str


# Server socket
bind = get_env_str('GUNICORN_BIND', f"0.0.0.0:{os.getenv('PORT', '3000')}")
backlog = 2048

# Worker processes: each holds its own credential pool
workers = get_env_int('GUNICORN_WORKERS', min(multiprocessing.cpu_count(), 4), min_value=1, max_value=100)
worker_class = 'gthread'
threads = get_env_int('GUNICORN_THREADS', 8, min_value=1, max_value=256)
timeout = get_env_int('GUNICORN_TIMEOUT', 900, min_value=1, max_value=3600)
keepalive = 5

# Logging
accesslog = get_env_str('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = get_env_str('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = get_env_str('GUNICORN_LOG_LEVEL', 'info', allowed_values=['debug', 'info', 'warning', 'error', 'critical'])
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'longstory'

# Server mechanics
daemon = False
pidfile = os.getenv('GUNICORN_PIDFILE', None)

user = os.getenv('GUNICORN_USER', None)
if user and (not user.strip() or '/' in user or '\\' in user):
    raise ValueError(f"Invalid GUNICORN_USER value: '{user}'. Must be a valid username.")

# Keys are loaded per worker, after fork
preload_app = False

graceful_timeout = 60
