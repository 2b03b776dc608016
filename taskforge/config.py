import os

API_KEY = os.getenv("API_KEY", "dev-key")

# Worker pool
WORKER_COUNT = int(os.getenv("WORKER_COUNT", "4"))
QUEUE_MAXSIZE = int(os.getenv("QUEUE_MAXSIZE", "1000"))

# Jobs left active longer than this are force-failed; 0 disables the watchdog
JOB_DEADLINE_SECONDS = float(os.getenv("JOB_DEADLINE_SECONDS", "0"))
WATCHDOG_POLL_SECONDS = float(os.getenv("WATCHDOG_POLL_SECONDS", "1.0"))

CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))

# Simulated I/O for the built-in handlers
EMAIL_SEND_SECONDS = float(os.getenv("EMAIL_SEND_SECONDS", "1.0"))
REPORT_GENERATE_SECONDS = float(os.getenv("REPORT_GENERATE_SECONDS", "5.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON") == "1"
