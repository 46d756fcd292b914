import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration read from the environment (and an optional .env file)."""

    def __init__(self):
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./attendance.db")
        self.SQL_ECHO = _env_bool("SQL_ECHO")

        self.SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

        # Google OAuth2 client registered for the authorization-code flow
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GOOGLE_REDIRECT_URI = os.getenv(
            "GOOGLE_REDIRECT_URI", "http://localhost:3000/auth/google/callback"
        )

        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
        self.HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "30"))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FILE = os.getenv("LOG_FILE", "app.log")

        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "3000"))
        self.RELOAD = _env_bool("RELOAD")

        self.STATIC_DIR = os.path.join(BASE_DIR, "static")

    @property
    def oauth_configured(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)


settings = Settings()
