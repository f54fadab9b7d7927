"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "Budgetwise"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Backend: "supabase" (hosted) or "sql" (local SQLAlchemy database)
    BACKEND_PROVIDER: str = "sql"
    SUPABASE_URL: str = ""  # e.g. https://xxxx.supabase.co
    SUPABASE_ANON_KEY: str = ""
    BACKEND_TIMEOUT: float = 10.0  # seconds, per HTTP call to the hosted backend
    
    # Database (local backend only)
    DATABASE_URL: str = "sqlite:///./budgetwise.db"
    DB_ECHO: bool = False
    
    # JWT (local backend only; hosted tokens are checked by the backend itself)
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    
    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:4200"]
    
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v
    
    # Budget rules
    MAX_BUDGETS_PER_USER: int = 10
    
    # Sessions unused for this long are dropped and reloaded on next use
    SESSION_IDLE_SECONDS: int = 900
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
