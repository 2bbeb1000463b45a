import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Frontend base URL, also the default CORS origin
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Marketplace <noreply@marketplace.local>")


# Hugging Face feature extraction (384-dim MiniLM vectors)
HF_TOKEN = os.getenv("HF_TOKEN")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
EMBEDDING_API_URL = os.getenv(
    "EMBEDDING_API_URL",
    f"https://api-inference.huggingface.co/pipeline/feature-extraction/{EMBEDDING_MODEL}",
)
EMBEDDING_TIMEOUT_SECONDS = float(os.getenv("EMBEDDING_TIMEOUT_SECONDS", "10"))

# Search
SEARCH_DEFAULT_RADIUS_KM = float(os.getenv("SEARCH_DEFAULT_RADIUS_KM", "50"))
SEMANTIC_TOP_K = int(os.getenv("SEMANTIC_TOP_K", "15"))
SEMANTIC_MIN_QUERY_LENGTH = int(os.getenv("SEMANTIC_MIN_QUERY_LENGTH", "3"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))

# Redis cache (optional - cache operates fail-open without it)
REDIS_URL = os.getenv("REDIS_URL")
CATEGORIES_CACHE_TTL = int(os.getenv("CATEGORIES_CACHE_TTL", "600"))
