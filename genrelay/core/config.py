# centralized configuration loader
# runs load_dotenv() to read .env
# create_app() reads these once and hands them to the services explicitly

import os
from dotenv import load_dotenv

load_dotenv()

# Provider directory
PROVIDERS_FILE = os.getenv("PROVIDERS_FILE", "providers.json")

# Header carrying the caller identity, set by the authentication gateway
AUTH_HEADER = os.getenv("AUTH_HEADER", "X-User-Id")

# Generation defaults
DEFAULT_TEMPERATURE = float(os.getenv("DEFAULT_TEMPERATURE", "0.7"))
DEFAULT_MAX_TOKENS = int(os.getenv("DEFAULT_MAX_TOKENS", "2000"))

# Upstream HTTP
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "60"))
UPSTREAM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_CONNECT_TIMEOUT_SECONDS", "10"))

# Server
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
