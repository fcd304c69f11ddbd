import os
import sys

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    _runtime_env_str = os.environ.get("RUNTIME_ENVIRONMENT")
    if not _runtime_env_str:
        raise ValueError("RUNTIME_ENVIRONMENT environment variable is not set")
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(_runtime_env_str)
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

# Database
DB_NAME = os.environ.get("DB_NAME", "storefront.db")

# HTTP server
WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT")) if os.environ.get("WEBAPP_PORT") else 8000

# Parse PAGE_ENTRIES with error handling
try:
    _page_entries_str = os.environ.get("PAGE_ENTRIES", "20")
    PAGE_ENTRIES = int(_page_entries_str)
    if PAGE_ENTRIES <= 0:
        raise ValueError(f"PAGE_ENTRIES must be positive (got: {PAGE_ENTRIES})")
except ValueError as e:
    print(f"\n ERROR: Invalid PAGE_ENTRIES configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Expected: Positive integer (e.g., 10, 20, 50)", file=sys.stderr)
    print(f"Current value: {os.environ.get('PAGE_ENTRIES', '(not set)')}\n", file=sys.stderr)
    sys.exit(1)

# Stock reservation window.
# Shared by the stock aggregator and the expiry reconciler, never read from the environment.
RESERVATION_WINDOW_MINUTES = 5

# Transient lock retries for reservation writes
STORE_LOCK_MAX_RETRIES = int(os.environ.get("STORE_LOCK_MAX_RETRIES", "3"))
STORE_LOCK_RETRY_DELAY = float(os.environ.get("STORE_LOCK_RETRY_DELAY", "0.1"))

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask card keys and credentials in logs

# Log Retention: Environment-specific defaults
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))

# HTTP Security Configuration
SECURITY_HEADERS_ENABLED = os.environ.get("SECURITY_HEADERS_ENABLED", "true") == "true"
HSTS_ENABLED = os.environ.get("HSTS_ENABLED", "false") == "true"  # Only for HTTPS deployments
CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",") if os.environ.get("CORS_ALLOWED_ORIGINS") else []
