DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_QUEUE_NAME = "workflow-execution"
DEFAULT_WORKER_CONCURRENCY = 10
MAX_EMAIL_RECIPIENTS = 5

# Step config keys consumed by the orchestrator, never passed to executors.
RESERVED_CONFIG_KEYS = ("retry", "onFailure")
