"""
스튜디오 도메인 저장소

검색 문서 생성에 필요한 조회만 제공합니다.
- get_all: 전체 스튜디오
- get_labels: 스튜디오의 라벨 (label_ids 순서 유지)
- get_scenes: 스튜디오에 속한 장면 ID
"""

import logging
import os
from typing import Dict, List, Optional, Protocol

import asyncpg
from dotenv import load_dotenv

from store.models import Label, Studio

load_dotenv()

logger = logging.getLogger(__name__)

# 환경 변수
PG_HOST = os.getenv("PG_HOST", "localhost")
PG_PORT = int(os.getenv("PG_PORT", "5432"))
PG_USER = os.getenv("PG_USER", "postgres")
PG_PASSWORD = os.getenv("PG_PASSWORD", "postgres")
PG_DATABASE = os.getenv("PG_DATABASE", "studios")


class StudioStore(Protocol):
    """도메인 저장소 인터페이스 (모두 비동기 I/O)"""

    async def get_all(self) -> List[Studio]:
        ...

    async def get_labels(self, studio: Studio) -> List[Label]:
        ...

    async def get_scenes(self, studio: Studio) -> List[str]:
        ...


class PostgresStudioStore:
    """
    PostgreSQL 기반 StudioStore 구현

    테이블:
        studios(id, name, added_on, bookmark, favorite)
        labels(id, name, aliases)
        studio_labels(studio_id, label_id, position)
        scenes(id, studio_id)

    사용 예:
        store = PostgresStudioStore()
        studios = await store.get_all()
    """

    def __init__(self, dsn: Optional[str] = None, pool: Optional[asyncpg.Pool] = None):
        """
        저장소 초기화

        Args:
            dsn: PostgreSQL 연결 문자열 (기본값: 환경 변수 기반)
            pool: 외부에서 생성한 커넥션 풀 (주입 시 dsn 무시)
        """
        self.dsn = dsn or f"postgresql://{PG_USER}:{PG_PASSWORD}@{PG_HOST}:{PG_PORT}/{PG_DATABASE}"
        self._pool: Optional[asyncpg.Pool] = pool

    async def _get_pool(self) -> asyncpg.Pool:
        """커넥션 풀 반환"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
            )
        return self._pool

    @staticmethod
    def _to_studio(row) -> Studio:
        return Studio(
            id=row["id"],
            name=row["name"],
            added_on=row["added_on"],
            label_ids=list(row["label_ids"] or []),
            bookmark=row["bookmark"],
            favorite=bool(row["favorite"]),
        )

    async def get_all(self) -> List[Studio]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT s.id, s.name, s.added_on, s.bookmark, s.favorite,
                       COALESCE(
                           array_agg(sl.label_id ORDER BY sl.position)
                               FILTER (WHERE sl.label_id IS NOT NULL),
                           '{}'
                       ) AS label_ids
                FROM studios s
                LEFT JOIN studio_labels sl ON sl.studio_id = s.id
                GROUP BY s.id
                ORDER BY s.added_on, s.id
                """
            )
        logger.info(f"Loaded {len(rows):,} studios")
        return [self._to_studio(row) for row in rows]

    async def get_labels(self, studio: Studio) -> List[Label]:
        if not studio.label_ids:
            return []

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id, name, aliases FROM labels WHERE id = ANY($1::text[])",
                studio.label_ids,
            )

        by_id: Dict[str, Label] = {
            row["id"]: Label(id=row["id"], name=row["name"], aliases=list(row["aliases"] or []))
            for row in rows
        }
        # 존재하지 않는 라벨 ID는 건너뜀
        return [by_id[label_id] for label_id in studio.label_ids if label_id in by_id]

    async def get_scenes(self, studio: Studio) -> List[str]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id FROM scenes WHERE studio_id = $1 ORDER BY id",
                studio.id,
            )
        return [row["id"] for row in rows]

    async def close(self):
        """커넥션 풀 종료"""
        if self._pool:
            await self._pool.close()
            self._pool = None
