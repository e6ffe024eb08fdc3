from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import List, Optional

from ledger_export.svensk_ekonomi.conventions import ExportConventions


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    DEBUG: bool = False

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    # X-API-Key, unset means open access
    API_KEY: Optional[str] = None

    # Ledger snapshot (.json or .xlsx), unset means an empty in-memory store
    STORE_PATH: Optional[str] = None

    # Export conventions
    PROGRAM_NAME: str = "Ledger Export"
    PROGRAM_VERSION: str = "1.0"
    DEFAULT_CURRENCY: str = "SEK"
    VAT_RATE_STANDARD: Decimal = Decimal("0.25")
    VAT_RATE_REDUCED_12: Decimal = Decimal("0.12")
    VAT_RATE_REDUCED_6: Decimal = Decimal("0.06")
    BALANCE_TOLERANCE: Decimal = Decimal("0.005")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse comma-separated ALLOWED_ORIGINS string into list."""
        if not self.ALLOWED_ORIGINS or not self.ALLOWED_ORIGINS.strip():
            return ["http://localhost:5173"]

        if self.ALLOWED_ORIGINS == "*":
            return ["*"]

        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def validate_production_config(self) -> None:
        """Validate configuration is safe for production environment."""
        if self.ENV != "production":
            return

        if self.DEBUG:
            raise ValueError(
                "SECURITY ERROR: DEBUG=true is not allowed in production! "
                "Set DEBUG=false in environment variables."
            )

        if self.ALLOWED_ORIGINS == "*":
            raise ValueError(
                "SECURITY ERROR: CORS allows all origins (*) in production! "
                "Set ALLOWED_ORIGINS to specific domains (comma-separated)."
            )

        if any("localhost" in origin or "127.0.0.1" in origin
               for origin in self.allowed_origins_list):
            raise ValueError(
                "SECURITY ERROR: localhost origins not allowed in production! "
                "Set ALLOWED_ORIGINS to production domains only."
            )

    def export_conventions(self) -> ExportConventions:
        """Conventions injected into every export."""
        return ExportConventions(
            program_name=self.PROGRAM_NAME,
            program_version=self.PROGRAM_VERSION,
            currency=self.DEFAULT_CURRENCY,
            balance_tolerance=self.BALANCE_TOLERANCE,
            vat_rate_standard=self.VAT_RATE_STANDARD,
            vat_rate_reduced_12=self.VAT_RATE_REDUCED_12,
            vat_rate_reduced_6=self.VAT_RATE_REDUCED_6,
        )

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
