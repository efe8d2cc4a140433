"""
스튜디오 → Elasticsearch 배치 인덱서

전체 스튜디오를 slice_size 단위로 나누어 순차 색인합니다.
중간에 실패하면 즉시 중단되며, 이미 색인된 슬라이스는 그대로 남습니다.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from search.config import INDEX_SLICE_SIZE
from search.documents import FIELDS, StudioSearchDoc, create_studio_search_doc
from search.errors import InvalidSliceSizeError
from search.es_client import ESIndexClient, Index
from store.models import Studio
from store.studio_store import StudioStore

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    """인덱싱 통계"""
    index: str
    total_studios: int
    indexed: int
    slices: int
    elapsed_seconds: float

    def __str__(self) -> str:
        return (
            f"{self.index}: "
            f"{self.indexed:,}/{self.total_studios:,} "
            f"in {self.slices} slice(s), "
            f"{self.elapsed_seconds:.1f}s"
        )


class BatchIndexer:
    """
    스튜디오 배치 인덱서

    사용 예:
        indexer = BatchIndexer(client, store)
        count = await indexer.index_studios(index, studios)
    """

    def __init__(
        self,
        client: ESIndexClient,
        store: StudioStore,
        slice_size: Optional[int] = None,
    ):
        """
        인덱서 초기화

        Args:
            client: ES 인덱스 클라이언트
            store: 라벨/장면 조회용 도메인 저장소
            slice_size: 한 번에 색인할 최대 문서 수 (기본값: INDEX_SLICE_SIZE)
        """
        if slice_size is None:
            slice_size = INDEX_SLICE_SIZE
        if isinstance(slice_size, bool) or not isinstance(slice_size, int) or slice_size < 1:
            raise InvalidSliceSizeError(slice_size)

        self.client = client
        self.store = store
        self.slice_size = slice_size

    async def _flush(self, index: Index, docs: List[StudioSearchDoc]) -> int:
        """슬라이스 하나 색인"""
        logger.info(f"Indexing {len(docs):,} items...")
        start_time = time.time()
        count = await self.client.index(index, docs, FIELDS)
        logger.info(f"Slice indexing done in {time.time() - start_time:.2f}s")
        return count

    async def _index_slices(self, index: Index, studios: Sequence[Studio]) -> Tuple[int, int]:
        """(색인 건수 합, 슬라이스 수)"""
        docs: List[StudioSearchDoc] = []
        num_items = 0
        num_slices = 0

        for studio in studios:
            docs.append(await create_studio_search_doc(studio, self.store))

            if len(docs) == self.slice_size:
                num_items += await self._flush(index, docs)
                num_slices += 1
                docs = []

        if docs:
            num_items += await self._flush(index, docs)
            num_slices += 1

        return num_items, num_slices

    async def index_studios(self, index: Index, studios: Sequence[Studio]) -> int:
        """
        스튜디오 전체 색인

        Args:
            index: 대상 인덱스
            studios: 색인할 스튜디오 목록

        Returns:
            ES가 보고한 슬라이스별 색인 건수의 합
        """
        num_items, _ = await self._index_slices(index, studios)
        return num_items

    async def update_studios(self, index: Index, studios: Sequence[Studio]) -> Dict[str, Any]:
        """
        소규모 변경분 갱신 (슬라이스 없이 update 1회)

        Args:
            index: 대상 인덱스
            studios: 갱신할 스튜디오 목록

        Returns:
            update 결과
        """
        if not studios:
            return {"updated": 0}

        docs = [await create_studio_search_doc(studio, self.store) for studio in studios]
        return await self.client.update(index, docs, FIELDS)

    async def index_all(self, index: Index) -> IndexStats:
        """
        저장소의 모든 스튜디오 색인

        Args:
            index: 대상 인덱스

        Returns:
            IndexStats
        """
        start_time = time.time()
        studios = await self.store.get_all()

        logger.info(f"Starting index build: {index.name} ({len(studios):,} studios, slice={self.slice_size})")
        indexed, slices = await self._index_slices(index, studios)

        stats = IndexStats(
            index=index.name,
            total_studios=len(studios),
            indexed=indexed,
            slices=slices,
            elapsed_seconds=time.time() - start_time,
        )
        logger.info(f"Completed: {stats}")
        return stats
