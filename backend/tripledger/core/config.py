"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "TripLedger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./tripledger.db"
    DB_ECHO: bool = False
    DB_ISOLATION_LEVEL: str = "SERIALIZABLE"
    
    # JWT (tokens are issued by the auth collaborator, verified here)
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    
    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8081"]
    
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v
    
    # Ledger
    DEFAULT_CURRENCY: str = "INR"
    BALANCE_EPSILON: Decimal = Decimal("0.01")  # Max |balance| allowed when a member leaves
    SHARE_DECIMAL_PLACES: int = 6  # Precision of stored involvement shares
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
