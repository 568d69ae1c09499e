"""Wizard configuration."""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class WizardConfig(BaseModel):
    """Configuration for the resource wizard pipeline."""

    db_path: str = ":memory:"
    audit_db_path: str = ":memory:"
    window_weeks: int = Field(ge=1, default=4)
    default_weekly_capacity: float = Field(gt=0, default=40.0)
    conversation_ttl_seconds: int = 1800
    sweep_interval_seconds: int = 300
    model: str = "gpt-4o-mini"
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "WizardConfig":
        """Build a config from WIZARD_* environment variables (and .env)."""
        load_dotenv()
        env = os.environ
        values = {
            "db_path": env.get("WIZARD_DB_PATH"),
            "audit_db_path": env.get("WIZARD_AUDIT_DB_PATH"),
            "window_weeks": env.get("WIZARD_WINDOW_WEEKS"),
            "default_weekly_capacity": env.get("WIZARD_DEFAULT_WEEKLY_CAPACITY"),
            "conversation_ttl_seconds": env.get("WIZARD_CONVERSATION_TTL_SECONDS"),
            "sweep_interval_seconds": env.get("WIZARD_SWEEP_INTERVAL_SECONDS"),
            "model": env.get("WIZARD_MODEL"),
            "llm_api_key": env.get("WIZARD_LLM_API_KEY", env.get("OPENAI_API_KEY")),
            "llm_base_url": env.get("WIZARD_LLM_BASE_URL"),
            "log_level": env.get("WIZARD_LOG_LEVEL"),
            "log_json": env.get("WIZARD_LOG_JSON"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})
