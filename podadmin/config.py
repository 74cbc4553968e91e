"""
Application configuration
Read once from the environment (and .env) at startup, then passed to create_app
"""

import os
from typing import Mapping, Optional, Set

from dotenv import load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}
AUTH_PROVIDERS = {"supabase", "jwt", "firebase"}


class Settings:
    """Validated configuration - provider credentials are checked when the provider is built"""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self._env = dict(os.environ if env is None else env)

        # Database
        self.MONGO_URL = self._env.get("MONGO_URL")
        self.MONGO_DB_NAME = self._env.get("MONGO_DB_NAME", "podadmin")
        self.CREATE_INDEXES = self._parse_bool("CREATE_INDEXES", True)

        # Identity provider
        self.AUTH_PROVIDER = self._env.get("AUTH_PROVIDER", "supabase").strip().lower()
        if self.AUTH_PROVIDER not in AUTH_PROVIDERS:
            raise RuntimeError(
                f"Invalid AUTH_PROVIDER '{self.AUTH_PROVIDER}', expected one of {sorted(AUTH_PROVIDERS)}"
            )
        self.AUTH_JWT_AUDIENCE = self._env.get("AUTH_JWT_AUDIENCE", "authenticated")
        self.ADMIN_EMAILS = self._parse_emails(self._env.get("ADMIN_EMAILS", ""))

        # Content
        self.CONTENT_ROOT = self._env.get("CONTENT_ROOT", os.getcwd())
        self.CASCADE_STAGES_ON_PROBLEM_DELETE = self._parse_bool("CASCADE_STAGES_ON_PROBLEM_DELETE", False)

        # HTTP
        self.CORS_ORIGINS = [
            origin.strip() for origin in self._env.get("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]
        self.LOG_LEVEL = self._env.get("LOG_LEVEL", "INFO").upper()

    def require(self, key: str) -> str:
        """Get required setting or crash"""
        value = self._env.get(key)
        if not value:
            raise RuntimeError(f"Missing required environment variable: {key}")
        return value

    def _parse_bool(self, key: str, default: bool) -> bool:
        value = self._env.get(key)
        if value is None or value.strip() == "":
            return default
        return value.strip().lower() in TRUE_VALUES

    @staticmethod
    def _parse_emails(emails_str: str) -> Set[str]:
        """Parse comma-separated emails into a lowercase set"""
        return {email.strip().lower() for email in emails_str.split(",") if email.strip()}


def load_settings() -> Settings:
    load_dotenv()
    return Settings()
