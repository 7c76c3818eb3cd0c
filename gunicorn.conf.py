# Gunicorn configuration file
# Start with: gunicorn -c gunicorn.conf.py run:app
import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8080")
backlog = 2048

# Single worker with threads; SQLite and the lazily created hypervisor
# client live in one process
workers = 1
worker_class = "gthread"
threads = multiprocessing.cpu_count() * 4
timeout = int(os.getenv("VIRSH_TIMEOUT", "30")) + 15
keepalive = 2

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"   # Log to stderr
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "vm-guardian"

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None

preload_app = False

# SSL (uncomment and configure if needed)
# keyfile = "/path/to/key.pem"
# certfile = "/path/to/cert.pem"
