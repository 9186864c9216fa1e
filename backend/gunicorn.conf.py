import multiprocessing
import os

# Quota accounting is safe across workers only with STORAGE_BACKEND=supabase;
# the memory store is per-process.
bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count()))
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "recipe_saas.main:app"
max_requests = 1000
max_requests_jitter = 50
timeout = 60
keepalive = 5
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
