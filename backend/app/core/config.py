import os
from pathlib import Path
from typing import List

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_RULES_PATH = Path(__file__).resolve().parents[2] / "config" / "league.yaml"


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///./tournaments.sqlite3"
    sql_echo: bool = False
    pool_size: int = 20
    max_overflow: int = 20
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """Builds settings from the environment (and .env, if present)."""
    defaults = Settings()
    origins = os.getenv("CORS_ORIGINS")
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        sql_echo=_env_flag("SQL_ECHO", defaults.sql_echo),
        pool_size=int(os.getenv("DB_POOL_SIZE", defaults.pool_size)),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", defaults.max_overflow)),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
    )


class LeagueRules(BaseModel):
    single_group_max_players: int = 10
    two_group_max_players: int = 20
    large_field_group_count: int = 4
    allowed_group_counts: List[int] = Field(default_factory=lambda: [1, 2, 4])
    third_place_match: bool = False
    tournament_name_max_length: int = 100
    player_name_max_length: int = 100

    def default_group_count(self, player_count: int) -> int:
        if player_count <= self.single_group_max_players:
            return 1
        if player_count <= self.two_group_max_players:
            return 2
        return self.large_field_group_count


def load_rules(path: str = None) -> LeagueRules:
    """Reads league.yaml; a missing file means the built-in defaults."""
    rules_path = Path(path or os.getenv("LEAGUE_RULES_PATH", DEFAULT_RULES_PATH))
    if not rules_path.exists():
        return LeagueRules()

    with open(rules_path, "r") as f:
        data = yaml.safe_load(f) or {}

    groups = data.get("groups", {})
    knockout = data.get("knockout", {})
    names = data.get("names", {})
    defaults = LeagueRules()
    return LeagueRules(
        single_group_max_players=groups.get("single_group_max_players", defaults.single_group_max_players),
        two_group_max_players=groups.get("two_group_max_players", defaults.two_group_max_players),
        large_field_group_count=groups.get("large_field_group_count", defaults.large_field_group_count),
        allowed_group_counts=groups.get("allowed_counts", defaults.allowed_group_counts),
        third_place_match=knockout.get("third_place_match", defaults.third_place_match),
        tournament_name_max_length=names.get("tournament_max_length", defaults.tournament_name_max_length),
        player_name_max_length=names.get("player_max_length", defaults.player_name_max_length),
    )


# Loaded once at import, like the rest of the service singletons
rules = load_rules()
