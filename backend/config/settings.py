"""Runtime configuration for the events backend."""

import os

APP_ENV = os.getenv("APP_ENV", "development").lower()
IS_PRODUCTION = APP_ENV == "production"

# Public base URL of the web frontend; used for checkout redirect targets
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")

# Session cookie / token
SESSION_SECRET = os.getenv("SESSION_SECRET", "default-secret-change-me")
SESSION_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = "session"
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "7"))

# Hosted checkout (Stripe)
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com").rstrip("/")
PAYMENT_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10"))

# OpenAI-compatible endpoint used by the assistant
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "http://127.0.0.1:11434/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-oss:20b")
LLM_API_KEY = os.getenv("LLM_API_KEY", "sk-no-key")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# Debug streaming disabled by default; enable with DEBUG_STREAM=1/true/yes
DEBUG_STREAM = os.getenv("DEBUG_STREAM", "0").lower() in ("1", "true", "yes")
