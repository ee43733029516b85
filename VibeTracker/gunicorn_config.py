import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
backlog = 128

# Sessions, profiles and locks live in process memory, so one worker process
# serves every request; concurrency comes from threads.
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', 4))
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 30))
keepalive = 2

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'warning')
access_log_format = '%h %t "%r" %s %b %D'

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 4096


def when_ready(server):
    server.log.info("Server is ready. Spawning workers")


def worker_abort(worker):
    worker.log.error("worker received SIGABRT signal")
