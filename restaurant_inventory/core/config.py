import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/restaurant_db")

# Application Metadata
PROJECT_NAME = "Restaurant Inventory Accounting Service"
VERSION = "1.0.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Deduction Engine Configuration
TRANSACTION_TIMEOUT = float(os.getenv("TRANSACTION_TIMEOUT", 10)) # Seconds before an apply step is aborted
ENFORCE_ORDER_IDEMPOTENCY = os.getenv("ENFORCE_ORDER_IDEMPOTENCY", "true").lower() == "true" # Reject a second deduction for the same order

# Alerting Configuration
DEFAULT_LOW_STOCK_THRESHOLD = int(os.getenv("DEFAULT_LOW_STOCK_THRESHOLD", 10))
