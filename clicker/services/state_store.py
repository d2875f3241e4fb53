"""State store adapters.

Season documents are keyed by (user_id, season_id), user documents by
user_id. Both are stored as JSON produced by the models' ``to_dict``.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from configs.settings import DB_PATH
from core.logging import get_logger

logger = get_logger("clicker.state_store")

STATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS season_state (
    user_id TEXT NOT NULL,
    season_id TEXT NOT NULL,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, season_id)
);

CREATE TABLE IF NOT EXISTS user_record (
    user_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class MemoryStateStore:
    """Dict-backed store for tests and offline play."""

    def __init__(self):
        self.seasons: dict[tuple[str, str], dict[str, Any]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.save_count = 0

    async def load_season(self, user_id: str, season_id: str) -> Optional[dict[str, Any]]:
        data = self.seasons.get((user_id, season_id))
        return copy.deepcopy(data) if data is not None else None

    async def save_season(self, user_id: str, season_id: str, data: dict[str, Any]) -> None:
        self.seasons[(user_id, season_id)] = copy.deepcopy(data)
        self.save_count += 1

    async def load_user(self, user_id: str) -> Optional[dict[str, Any]]:
        data = self.users.get(user_id)
        return copy.deepcopy(data) if data is not None else None

    async def save_user(self, user_id: str, data: dict[str, Any]) -> None:
        self.users[user_id] = copy.deepcopy(data)


class SqliteStateStore:
    """aiosqlite-backed store. Opens a connection per call."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(STATE_TABLES_SQL)
            await db.commit()
        self._initialized = True
        logger.info("state_store_initialized", db_path=self.db_path)

    async def _fetch_json(self, query: str, params: tuple) -> Optional[dict[str, Any]]:
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.error("state_document_corrupt", query=query, params=params)
            return None

    async def load_season(self, user_id: str, season_id: str) -> Optional[dict[str, Any]]:
        return await self._fetch_json(
            "SELECT data FROM season_state WHERE user_id = ? AND season_id = ?",
            (user_id, season_id),
        )

    async def save_season(self, user_id: str, season_id: str, data: dict[str, Any]) -> None:
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO season_state (user_id, season_id, data, updated_at) "
                "VALUES (?, ?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(user_id, season_id) DO UPDATE SET data = excluded.data, updated_at = CURRENT_TIMESTAMP",
                (user_id, season_id, json.dumps(data)),
            )
            await db.commit()

    async def load_user(self, user_id: str) -> Optional[dict[str, Any]]:
        return await self._fetch_json(
            "SELECT data FROM user_record WHERE user_id = ?",
            (user_id,),
        )

    async def save_user(self, user_id: str, data: dict[str, Any]) -> None:
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO user_record (user_id, data, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(user_id) DO UPDATE SET data = excluded.data, updated_at = CURRENT_TIMESTAMP",
                (user_id, json.dumps(data)),
            )
            await db.commit()
