from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("tech-invoice-mirror", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # LLM extraction (OpenAI-compatible endpoint)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")
    openai_model: str = Field("gpt-4", alias="OPENAI_MODEL")
    extraction_temperature: float = Field(0.1, alias="EXTRACTION_TEMPERATURE")
    extraction_max_tokens: int = Field(200, alias="EXTRACTION_MAX_TOKENS")

    # Record store
    store_backend: str = Field("sqlite", alias="STORE_BACKEND")  # "sqlite" or "memory"
    database_path: str = Field("invoices.db", alias="DATABASE_PATH")

    # Google Sheets mirror
    google_sheet_id: str | None = Field(default=None, alias="GOOGLE_SHEET_ID")
    google_service_account_email: str | None = Field(default=None, alias="GOOGLE_SERVICE_ACCOUNT_EMAIL")
    google_private_key: str | None = Field(default=None, alias="GOOGLE_PRIVATE_KEY")
    google_sheets_api_base: str = Field("https://sheets.googleapis.com/v4", alias="GOOGLE_SHEETS_API_BASE")
    sheet_title: str = Field("Invoices", alias="SHEET_TITLE")

    # Sync retry policy
    sync_max_attempts: int = Field(3, alias="SYNC_MAX_ATTEMPTS")
    sync_base_delay_seconds: float = Field(1.0, alias="SYNC_BASE_DELAY_SECONDS")
    sync_max_delay_seconds: float = Field(5.0, alias="SYNC_MAX_DELAY_SECONDS")

    # Intake gate
    intake_subject_marker: str = Field("tech invoice", alias="INTAKE_SUBJECT_MARKER")
    duplicate_scan_window: int = Field(25, alias="DUPLICATE_SCAN_WINDOW")
    strict_duplicate_check: bool = Field(False, alias="STRICT_DUPLICATE_CHECK")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}

    @property
    def google_private_key_pem(self) -> str | None:
        """Private key with escaped newlines restored (as stored in most .env files)"""
        if not self.google_private_key:
            return None
        return self.google_private_key.replace("\\n", "\n")

    @property
    def sheets_configured(self) -> bool:
        return bool(self.google_sheet_id and self.google_service_account_email and self.google_private_key)

settings = Settings()
