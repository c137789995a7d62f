import multiprocessing
import os

# Server configuration
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"
workers = max(1, multiprocessing.cpu_count())
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "quickdesk.main:app"
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 100

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Timeouts
timeout = 120
graceful_timeout = 30

# Process naming
proc_name = "quickdesk-api"

# Environment
raw_env = [
    "PYTHONUNBUFFERED=1",
]
