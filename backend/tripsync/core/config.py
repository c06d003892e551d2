import os
import re

from dotenv import find_dotenv, load_dotenv


# Load environment variables with .env, .env.dev/.env.prod support
def _load_env_files() -> None:
    """
    Load .env files with this precedence:
    1) Base .env (if present)
    2) Explicit file via ENV_FILE (e.g., .env.dev or ./config/.env.prod)
    3) Environment-specific file inferred from ENVIRONMENT/ENV/PYTHON_ENV
        - Supports aliases like dev/development, prod/production, stage/staging
    Note: Existing OS environment variables are never overridden.
    """
    base_path = find_dotenv(".env", usecwd=True)
    if base_path:
        load_dotenv(base_path, override=False)

    explicit = os.environ.get("ENV_FILE")
    if explicit:
        explicit_path = explicit if os.path.isabs(explicit) else find_dotenv(explicit, usecwd=True)
        if explicit_path:
            load_dotenv(explicit_path, override=False)
            return

    env_name = (
        os.environ.get("ENVIRONMENT") or os.environ.get("ENV") or os.environ.get("PYTHON_ENV")
    )
    if env_name:
        slug = str(env_name).strip().lower()
        alias = {
            "dev": "development",
            "prod": "production",
            "stg": "staging",
            "test": "test",
        }
        resolved = alias.get(slug, slug)
        for candidate in (f".env.{resolved}", f".env.{slug}"):
            path = find_dotenv(candidate, usecwd=True)
            if path:
                load_dotenv(path, override=False)
                break


_load_env_files()

# === Server Configuration ===
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")


def _get_int_env(var_name: str, default_value: int) -> int:
    """
    Parse an integer environment variable robustly.
    - Trims whitespace and trailing semicolons.
    - Falls back to the first integer found in the string.
    - Returns the provided default if parsing fails.
    """
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return int(text)
    except ValueError:
        match = re.search(r"[-+]?\d+", text or "")
        if match:
            return int(match.group(0))
    return int(default_value)


SERVER_PORT = _get_int_env("SERVER_PORT", 3002)


# === CORS Configuration ===
def _get_cors_origins() -> list[str]:
    """
    Return CORS origins from env or the local client origin.
    Example env format:
      CORS_ORIGINS="http://localhost:8080,https://yourdomain.com"
    """
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:8080"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ORIGINS = _get_cors_origins()

# === Database Configuration ===
MONGODB_URI = os.environ.get("MONGODB_URI")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "tripsync")
# Applied to server selection, connect and socket operations
DB_TIMEOUT_MS = _get_int_env("DB_TIMEOUT_MS", 10000)

# === Google OAuth Configuration ===
GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.environ.get("GOOGLE_REDIRECT_URI")
GOOGLE_TOKEN_URL = os.environ.get("GOOGLE_TOKEN_URL", "https://oauth2.googleapis.com/token")
GOOGLE_USERINFO_URL = os.environ.get(
    "GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v2/userinfo"
)

# === JWT Configuration ===
JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key-change-this-in-production")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = _get_int_env("JWT_EXPIRATION_HOURS", 24)

# === Mail (Resend) ===
# Both unset means invites are recorded but never emailed (recorded_not_sent).
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
EMAIL_FROM = os.environ.get("EMAIL_FROM", "")
MAIL_TIMEOUT_SECONDS = _get_int_env("MAIL_TIMEOUT_SECONDS", 15)
APP_URL = os.environ.get("APP_URL", "http://localhost:8080")

# === Logging ===
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LOG_FILE")

# === Collaboration ===
REACTION_WRITE_RETRIES = _get_int_env("REACTION_WRITE_RETRIES", 5)

# === Application Settings ===
APP_NAME = "TripSync API"
APP_VERSION = "1.0.0"
