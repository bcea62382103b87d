#!/usr/bin/env python3
"""
Praxis Service Entrypoint

Picks the process to run from the SERVICE_TYPE environment variable.
Set SERVICE_TYPE in each deployed service's settings.

SERVICE_TYPE values:
  - web (default): Run the FastAPI web server via gunicorn
  - worker: Run an RQ worker pool for WORKER_QUEUE
  - scheduler: Run the stale plan sweeper
"""

import os
import sys

SERVICE_TYPE = os.environ.get("SERVICE_TYPE", "web")
PORT = os.environ.get("PORT", "8080")
WORKER_QUEUE = os.environ.get("WORKER_QUEUE", "plan-generation")

print("=" * 50)
print(f"Praxis Service: {SERVICE_TYPE}")
print("=" * 50)

if SERVICE_TYPE == "web":
    print("Starting web server (gunicorn)...")
    cmd = [
        "gunicorn", "praxis.api.main:app",
        "--workers", "2",
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--bind", f"0.0.0.0:{PORT}",
        "--timeout", "120",
        "--graceful-timeout", "30"
    ]
elif SERVICE_TYPE == "worker":
    print(f"Starting RQ worker pool ({WORKER_QUEUE} queue)...")
    cmd = ["python", "-m", "praxis.queue.run_worker", "--queue", WORKER_QUEUE]
elif SERVICE_TYPE == "scheduler":
    print("Starting stale plan sweeper...")
    cmd = ["python", "-m", "praxis.queue.run_scheduler"]
else:
    print(f"ERROR: Unknown SERVICE_TYPE: {SERVICE_TYPE}")
    print("Valid values: web, worker, scheduler")
    sys.exit(1)

print(f"Running: {' '.join(cmd)}")
print("=" * 50)

# Replace this process with the actual command
os.execvp(cmd[0], cmd)
