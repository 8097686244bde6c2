# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/context/pg_source.py
from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

import asyncpg

from aquabot_ai_app.apps.chat.sdk.config import Settings, get_settings


class PgTankDataSource:
    """asyncpg implementation of TankDataSource. Read-only; rows are returned as plain dicts."""

    def __init__(self, settings: Optional[Settings] = None, pool: Optional[asyncpg.Pool] = None):
        self._settings = settings or get_settings()
        self._pool = pool

    async def init(self):
        async def _init_conn(conn: asyncpg.Connection):
            # Encode/decode json & jsonb as Python dicts automatically
            await conn.set_type_codec('json',  encoder=json.dumps, decoder=json.loads, schema='pg_catalog')
            await conn.set_type_codec('jsonb', encoder=json.dumps, decoder=json.loads, schema='pg_catalog')
            await conn.execute("SET TIME ZONE 'UTC'; SET datestyle = ISO, YMD;")

        if not self._pool:
            self._pool = await asyncpg.create_pool(
                host=self._settings.PGHOST,
                port=self._settings.PGPORT,
                user=self._settings.PGUSER,
                password=self._settings.PGPASSWORD,
                database=self._settings.PGDATABASE,
                ssl=self._settings.PGSSL,
                max_inactive_connection_lifetime=300.0,
                min_size=int(os.getenv("PGPOOL_MIN_SIZE", "0")),
                max_size=int(os.getenv("PGPOOL_MAX_SIZE", "8")),
                init=_init_conn,
                server_settings={"application_name": "aquabot-context"},
            )

    async def close(self):
        if self._pool: await self._pool.close()

    async def _fetch(self, q: str, *args: Any) -> List[Dict[str, Any]]:
        async with self._pool.acquire() as con:
            rows = await con.fetch(q, *args)
        return [dict(r) for r in rows]

    async def _fetchrow(self, q: str, *args: Any) -> Optional[Dict[str, Any]]:
        async with self._pool.acquire() as con:
            row = await con.fetchrow(q, *args)
        return dict(row) if row else None

    async def fetch_tank(self, tank_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetchrow(
            """SELECT id::text, name, type, volume_gallons, length_inches, width_inches, height_inches,
                      substrate, setup_date, notes
                 FROM tanks
                WHERE id = $1::uuid AND user_id = $2::uuid AND deleted_at IS NULL""",
            tank_id, user_id,
        )

    async def fetch_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetchrow(
            "SELECT skill_level, unit_preference_volume, unit_preference_temp FROM users WHERE id = $1::uuid",
            user_id,
        )

    async def fetch_parameters(self, tank_id: str, limit: int) -> List[Dict[str, Any]]:
        return await self._fetch(
            """SELECT measured_at, ph, ammonia_ppm, nitrite_ppm, nitrate_ppm, temperature_f, salinity
                 FROM water_parameters
                WHERE tank_id = $1::uuid
                ORDER BY measured_at DESC
                LIMIT $2""",
            tank_id, int(limit),
        )

    async def fetch_livestock(self, tank_id: str) -> List[Dict[str, Any]]:
        return await self._fetch(
            """SELECT l.custom_name, l.nickname, l.quantity, l.date_added,
                      s.common_name AS species_common_name
                 FROM livestock l
                 LEFT JOIN species s ON s.id = l.species_id
                WHERE l.tank_id = $1::uuid AND l.is_active AND l.deleted_at IS NULL""",
            tank_id,
        )

    async def fetch_maintenance(self, tank_id: str, limit: int) -> List[Dict[str, Any]]:
        return await self._fetch(
            """SELECT t.type, t.title, t.next_due_date,
                      (SELECT max(ml.completed_at) FROM maintenance_logs ml WHERE ml.task_id = t.id)
                          AS last_completed_at
                 FROM maintenance_tasks t
                WHERE t.tank_id = $1::uuid AND t.is_active AND t.deleted_at IS NULL
                ORDER BY t.next_due_date ASC NULLS LAST
                LIMIT $2""",
            tank_id, int(limit),
        )

    async def fetch_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetchrow("SELECT * FROM user_preferences WHERE user_id = $1::uuid", user_id)
