import json
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from revstorm.domain.repositories import SaveRepository


_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS save_slot (
        slot VARCHAR(64) NOT NULL PRIMARY KEY,
        document TEXT NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
"""


class SqlSaveRepository(SaveRepository):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._schema_ready = False

    def _ensure_schema(self, session: Session) -> None:
        if self._schema_ready:
            return
        session.execute(text(_CREATE_TABLE))
        session.commit()
        self._schema_ready = True

    def get(self, slot: str) -> Optional[dict]:
        with self._session_factory() as session:
            self._ensure_schema(session)
            row = session.execute(
                text("SELECT document FROM save_slot WHERE slot = :slot"),
                {"slot": slot},
            ).first()
        if row is None:
            return None
        document = row.document
        return json.loads(document) if isinstance(document, str) else dict(document)

    def save(self, slot: str, document: dict) -> None:
        params = {
            "slot": slot,
            "document": json.dumps(document, ensure_ascii=False),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        with self._session_factory() as session:
            self._ensure_schema(session)
            dialect = session.bind.dialect.name if session.bind is not None else "sqlite"
            if dialect == "mysql":
                statement = """
                    INSERT INTO save_slot (slot, document, updated_at)
                    VALUES (:slot, :document, :updated_at)
                    ON DUPLICATE KEY UPDATE document = VALUES(document), updated_at = VALUES(updated_at)
                """
            else:
                statement = """
                    INSERT INTO save_slot (slot, document, updated_at)
                    VALUES (:slot, :document, :updated_at)
                    ON CONFLICT(slot) DO UPDATE SET document = excluded.document, updated_at = excluded.updated_at
                """
            session.execute(text(statement), params)
            session.commit()

    def list_slots(self) -> List[str]:
        with self._session_factory() as session:
            self._ensure_schema(session)
            rows = session.execute(text("SELECT slot FROM save_slot ORDER BY slot")).all()
        return [str(row.slot) for row in rows]

    def delete(self, slot: str) -> bool:
        with self._session_factory() as session:
            self._ensure_schema(session)
            result = session.execute(text("DELETE FROM save_slot WHERE slot = :slot"), {"slot": slot})
            session.commit()
        return bool(result.rowcount)
