# mdcat_generator/core/config.py
import os
import logging
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    """Centralized configuration management"""

    # ==================== API Configuration ====================
    API_TITLE = "MDCAT Past Paper Generator"
    API_DESCRIPTION = "AI-powered MDCAT multiple-choice question generator"
    API_VERSION = "3.1.0"

    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", os.getenv("PORT", "3000")))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    STATIC_DIR = BASE_DIR / "static"

    # ==================== Environment Settings ====================
    # development | test | production
    APP_ENV = os.getenv("APP_ENV", "development").lower()
    USE_DUMMY_DATA = os.getenv("USE_DUMMY_DATA", "false").lower() == "true"

    # ==================== AI Service Configuration ====================
    # Groq settings
    GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TIMEOUT = float(os.getenv("GROQ_TIMEOUT", "45"))
    GROQ_TEMPERATURE = float(os.getenv("GROQ_TEMPERATURE", "0.1"))  # low for scope adherence
    GROQ_MAX_TOKENS = int(os.getenv("GROQ_MAX_TOKENS", "8192"))
    GROQ_TOP_P = float(os.getenv("GROQ_TOP_P", "0.8"))

    # ==================== Generation Configuration ====================
    MIN_QUESTION_COUNT = int(os.getenv("MIN_QUESTION_COUNT", "1"))
    MAX_QUESTION_COUNT = int(os.getenv("MAX_QUESTION_COUNT", "180"))

    # Retry settings
    GENERATION_MAX_RETRIES = int(os.getenv("GENERATION_MAX_RETRIES", "3"))
    GENERATION_SUBCALL_RETRIES = int(os.getenv("GENERATION_SUBCALL_RETRIES", "2"))
    RETRY_BASE_DELAY_MS = int(os.getenv("RETRY_BASE_DELAY_MS", "1000"))
    RETRY_MAX_DELAY_MS = int(os.getenv("RETRY_MAX_DELAY_MS", "10000"))

    # Strategy thresholds
    SINGLE_CALL_LIMIT = int(os.getenv("SINGLE_CALL_LIMIT", "35"))
    SEQUENTIAL_THRESHOLD = int(os.getenv("SEQUENTIAL_THRESHOLD", "30"))
    MAX_BATCH_SIZE = int(os.getenv("MAX_BATCH_SIZE", "30"))

    # Pacing between sequential calls (seconds)
    SUBJECT_DELAY_SECONDS = float(os.getenv("SUBJECT_DELAY_SECONDS", "1.0"))
    BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "2.0"))

    # ==================== Derived Settings ====================
    @property
    def is_test(self) -> bool:
        return self.APP_ENV == "test"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def offline_mode(self) -> bool:
        """Stub responses, no network and no credentials"""
        return self.is_test or self.USE_DUMMY_DATA

    @property
    def has_api_key(self) -> bool:
        return bool(self.GROQ_API_KEY)

    @property
    def cors_origins(self):
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # ==================== Environment Overrides ====================
    @classmethod
    def from_env(cls) -> 'Config':
        """Create config with environment variable overrides"""
        return cls()

    # ==================== Validation ====================
    def validate(self) -> Dict[str, Any]:
        """Validate configuration and return status"""
        issues = []

        if self.APP_ENV not in ("development", "test", "production"):
            issues.append("APP_ENV must be one of development, test, production")

        if not self.offline_mode and not self.GROQ_API_KEY:
            issues.append("GROQ_API_KEY is required outside test mode")

        if self.GROQ_TIMEOUT <= 0:
            issues.append("GROQ_TIMEOUT must be positive")

        if not (1 <= self.MIN_QUESTION_COUNT <= self.MAX_QUESTION_COUNT):
            issues.append("MIN_QUESTION_COUNT must be between 1 and MAX_QUESTION_COUNT")

        if self.GENERATION_MAX_RETRIES < 1 or self.GENERATION_SUBCALL_RETRIES < 1:
            issues.append("Retry counts must be at least 1")

        if self.MAX_BATCH_SIZE < 1:
            issues.append("MAX_BATCH_SIZE must be at least 1")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "config_loaded": True,
            "offline_mode": self.offline_mode
        }

# Global configuration instance
config = Config.from_env()

# Validate on import
validation_result = config.validate()
if not validation_result["valid"]:
    logger = logging.getLogger(__name__)
    logger.warning(f"Configuration issues: {validation_result['issues']}")
