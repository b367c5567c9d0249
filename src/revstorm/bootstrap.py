from __future__ import annotations

import logging
import os
import socket
from urllib.parse import urlparse

from revstorm.application.services.autosave import register_autosave_handlers
from revstorm.application.services.event_bus import EventBus
from revstorm.application.services.game_session_service import GameSessionService
from revstorm.application.services.seed_policy import derive_seed
from revstorm.domain.models.settings import GameSettings, HistoryStyle
from revstorm.domain.repositories import NarrativeCollaborator, SaveRepository
from revstorm.infrastructure.inmemory.inmemory_save_repo import InMemorySaveRepository
from revstorm.infrastructure.inmemory.scripted_narrative_client import ScriptedNarrativeClient, offline_scene


logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUTHY


def _looks_like_local_database_unreachable(database_url: str) -> bool:
    if not database_url:
        return False

    parsed = urlparse(database_url)
    if parsed.scheme.startswith("sqlite"):
        return False

    host = (parsed.hostname or "").strip().lower()
    if host not in {"localhost", "127.0.0.1", "::1"}:
        return False

    default_port = 3306 if parsed.scheme.startswith("mysql") else 5432
    port = parsed.port or default_port
    timeout = float(os.getenv("REVSTORM_DB_CONNECT_PROBE_TIMEOUT_S", "0.35"))

    try:
        with socket.create_connection((host, port), timeout=timeout):
            return False
    except OSError:
        return True


def load_settings_from_env() -> GameSettings:
    return GameSettings(
        months_per_turn=os.getenv("REVSTORM_MONTHS_PER_TURN", "1"),
        base_luck=os.getenv("REVSTORM_BASE_LUCK", "1.0"),
        history_style=HistoryStyle.normalize(os.getenv("REVSTORM_HISTORY_STYLE", "realism")),
        cheat_mode=_env_flag("REVSTORM_CHEAT_MODE"),
    )


def create_narrative_client() -> NarrativeCollaborator:
    base_url = os.getenv("REVSTORM_NARRATIVE_URL", "").strip()
    if not base_url:
        logger.info("No narrative service configured; using the offline scene generator")
        return ScriptedNarrativeClient(fallback=offline_scene)

    from revstorm.infrastructure.narrative_client import HttpNarrativeClient

    return HttpNarrativeClient(
        base_url,
        api_key=os.getenv("REVSTORM_NARRATIVE_API_KEY", ""),
        model=os.getenv("REVSTORM_NARRATIVE_MODEL", ""),
        timeout=float(os.getenv("REVSTORM_NARRATIVE_TIMEOUT_S", "90")),
        retries=int(os.getenv("REVSTORM_NARRATIVE_RETRIES", "1")),
        backoff_seconds=float(os.getenv("REVSTORM_NARRATIVE_BACKOFF_S", "2")),
    )


def create_save_repository() -> SaveRepository:
    database_url = os.getenv("REVSTORM_DATABASE_URL", "").strip()
    if not database_url:
        return InMemorySaveRepository()

    if _looks_like_local_database_unreachable(database_url):
        logger.warning("Database at %s is unreachable; saves stay in memory", urlparse(database_url).hostname)
        return InMemorySaveRepository()

    from revstorm.infrastructure.db.sql.connection import build_engine, build_session_factory
    from revstorm.infrastructure.db.sql.sql_save_repo import SqlSaveRepository

    engine = build_engine(database_url)
    return SqlSaveRepository(build_session_factory(engine))


def _seed_from_env() -> int | None:
    raw = os.getenv("REVSTORM_SEED", "").strip()
    if not raw:
        return None
    if raw.lstrip("-").isdigit():
        return int(raw)
    return derive_seed("session", {"seed": raw})


def create_game_service(save_repository: SaveRepository | None = None) -> GameSessionService:
    event_bus = EventBus()
    service = GameSessionService(
        create_narrative_client(),
        settings=load_settings_from_env(),
        event_bus=event_bus,
        seed=_seed_from_env(),
    )
    if save_repository is not None and os.getenv("REVSTORM_AUTOSAVE", "1").strip().lower() in _TRUTHY:
        register_autosave_handlers(event_bus, save_repository, lambda: service.session.state)
    return service
