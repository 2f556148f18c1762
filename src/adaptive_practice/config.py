"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


# YAML section -> {yaml key: settings field}
_YAML_SECTIONS: dict[str, dict[str, str]] = {
    "server": {"host": "host", "port": "port"},
    "storage": {
        "data_dir": "data_dir",
        "lock_timeout_seconds": "lock_timeout_seconds",
    },
    "levels": {
        "promotion_streak": "promotion_streak",
        "demotion_attempts": "demotion_attempts",
        "pass_mark": "pass_mark",
    },
    "session": {
        "size": "session_size",
        "min_history_attempts": "min_history_attempts",
        "weak_skill_window": "weak_skill_window",
        "recent_window_days": "recent_window_days",
        "recent_attempt_limit": "recent_attempt_limit",
        "candidate_window": "candidate_window",
        "lazy_top_up": "lazy_top_up",
    },
    "usage": {
        "free_tier_lifetime_limit": "free_tier_lifetime_limit",
        "timeout_seconds": "usage_timeout_seconds",
    },
    "inventory": {
        "min_count": "inventory_min_count",
        "max_per_call": "generation_max_per_call",
    },
    "openai": {"generation_model": "generation_model"},
}


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Reads ``config/settings.yaml`` and maps its sections onto field names."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        # Unused: __call__ returns every value at once.
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.is_file():
            return {}
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}

        values: dict[str, Any] = {}
        for section, fields in _YAML_SECTIONS.items():
            raw = data.get(section) or {}
            values.update(
                {name: raw[key] for key, name in fields.items() if raw.get(key) is not None}
            )
        return values


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (optional: None disables on-demand generation)
    openai_api_key: str | None = Field(default=None)
    generation_model: str = Field(default="gpt-4o-mini")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Storage
    data_dir: Path | None = Field(default=None)
    lock_timeout_seconds: float = Field(default=5.0)

    # Level state machine
    promotion_streak: int = Field(default=5, ge=1)
    demotion_attempts: int = Field(default=10, ge=1)
    pass_mark: float = Field(default=70.0)

    # Session composition
    session_size: int = Field(default=4, ge=1)
    min_history_attempts: int = Field(default=4)
    weak_skill_window: int = Field(default=20)
    recent_window_days: int = Field(default=7)
    recent_attempt_limit: int = Field(default=20)
    candidate_window: int = Field(default=10)
    lazy_top_up: bool = Field(default=True)

    # Free tier
    free_tier_lifetime_limit: int = Field(default=5)
    usage_timeout_seconds: float = Field(default=10.0)

    # Inventory
    inventory_min_count: int = Field(default=5)
    generation_max_per_call: int = Field(default=20)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def storage_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Constructor args win, then env, then .env, then settings.yaml."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    return Settings()
