import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


DEFAULT_DATABASE_URL = "sqlite:///revstorm.db"


def database_url_from_env() -> str:
    return os.getenv("REVSTORM_DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL


def build_engine(database_url: str | None = None) -> Engine:
    return create_engine(database_url or database_url_from_env(), echo=False, future=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
