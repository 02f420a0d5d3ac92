import os

# gunicorn -c gunicorn_config.py main:app
#
# Run a single worker: the attendance scheduler lives inside the app process,
# and every extra worker would start its own copy of the auto check-out job.
# Scale out with ENABLE_SCHEDULER=0 on all but one instance.

bind = os.getenv("GUNICORN_BIND", "127.0.0.1:8000")
backlog = 2048

workers = int(os.getenv("GUNICORN_WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 120
keepalive = 5

max_requests = 1000
max_requests_jitter = 50

accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("LOG_LEVEL", "info")

proc_name = "attendance-tasks-api"
