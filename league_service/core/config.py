import os

# Database Configuration
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/league_db")

# Application Metadata
PROJECT_NAME = "League Service"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Outbox Dispatcher Configuration
OUTBOX_POLL_INTERVAL_MS = int(os.getenv("OUTBOX_POLL_INTERVAL_MS", 5000)) # Dispatcher checks for new events every N ms
OUTBOX_BATCH_SIZE = int(os.getenv("OUTBOX_BATCH_SIZE", 10)) # How many events to claim per cycle
OUTBOX_MAX_RETRIES = int(os.getenv("OUTBOX_MAX_RETRIES", 3)) # Attempts before an event is frozen as FAILED
OUTBOX_SHUTDOWN_TIMEOUT_MS = int(os.getenv("OUTBOX_SHUTDOWN_TIMEOUT_MS", 5000)) # Max wait for an in-flight cycle on shutdown
OUTBOX_STALE_CLAIM_SECONDS = int(os.getenv("OUTBOX_STALE_CLAIM_SECONDS", 300)) # PROCESSING claims older than this are released on start

# Player ratings
DEFAULT_STARTING_RATING = int(os.getenv("DEFAULT_STARTING_RATING", 1000))
