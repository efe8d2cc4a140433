"""
스튜디오 검색 서비스

인덱스 핸들을 소유하고 빌드 / 갱신 / 검색을 조율합니다.

빌드는 새 물리 인덱스를 끝까지 채운 뒤 alias를 한 번에 교체하므로
빌드 중에도 검색은 항상 이전의 완성된 인덱스를 봅니다.
빌드가 실패하면 새 인덱스를 삭제하고 이전 인덱스를 그대로 유지합니다.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from search.config import DEFAULT_SHUFFLE_SEED, STUDIO_INDEX_ALIAS, STUDIO_MAPPING
from search.errors import IndexNotReadyError
from search.es_client import ESIndexClient, Index, SearchPage
from search.es_indices import ESIndexManager, versioned_index_name
from search.indexer import BatchIndexer, IndexStats
from search.query_compiler import QueryCompiler, QueryOptions
from store.models import Studio
from store.studio_store import PostgresStudioStore, StudioStore

logger = logging.getLogger(__name__)


class StudioSearchService:
    """
    스튜디오 검색 서비스

    사용 예:
        service = StudioSearchService(ESIndexClient(), PostgresStudioStore())
        await service.build_index()
        page = await service.search(QueryOptions(query="acme"))
    """

    def __init__(
        self,
        client: ESIndexClient,
        store: StudioStore,
        manager: Optional[ESIndexManager] = None,
        alias: str = STUDIO_INDEX_ALIAS,
        slice_size: Optional[int] = None,
    ):
        """
        서비스 초기화

        Args:
            client: ES 인덱스 클라이언트
            store: 도메인 저장소
            manager: 인덱스 관리자 (기본값: client와 같은 ES 연결 공유)
            alias: 검색에 사용하는 alias명
            slice_size: 배치 인덱싱 슬라이스 크기
        """
        self.client = client
        self.store = store
        self.manager = manager or ESIndexManager(client=client.async_client)
        self.alias = alias
        self.indexer = BatchIndexer(client, store, slice_size)
        self.compiler = QueryCompiler(client)
        self._index: Optional[Index] = None

    @property
    def index(self) -> Optional[Index]:
        """현재 검색 대상 인덱스 핸들 (빌드 전이면 None)"""
        return self._index

    def _require_index(self) -> Index:
        if self._index is None:
            raise IndexNotReadyError(self.alias)
        return self._index

    async def _discard(self, index_name: str):
        """인덱스 정리 (정리 실패는 로그만 남기고 빌드 결과에 영향 없음)"""
        try:
            await self.manager.delete_index(index_name)
        except Exception as e:
            logger.error(f"Failed to delete index {index_name}: {e}")

    async def build_index(self) -> IndexStats:
        """
        전체 재색인 후 alias 교체

        Returns:
            IndexStats

        Raises:
            색인 중 발생한 원래 예외 (이전 인덱스는 유지)
        """
        index_name = versioned_index_name(self.alias)
        new_index = await self.client.create(index_name, mapping=STUDIO_MAPPING)

        try:
            stats = await self.indexer.index_all(new_index)
            await self.manager.refresh_index(index_name)
            previous = await self.manager.swap_alias(self.alias, index_name)
        except Exception:
            logger.error(f"Index build failed, keeping previous index for '{self.alias}'")
            await self._discard(index_name)
            raise

        self._index = Index(name=self.alias, fields=list(new_index.fields))
        logger.info(f"Index size: {stats.indexed:,} items")

        for old_name in previous:
            await self._discard(old_name)

        return stats

    async def attach(self) -> Index:
        """
        이미 존재하는 alias를 검색 대상으로 사용

        Raises:
            IndexNotReadyError: alias가 없을 때
        """
        targets = await self.manager.get_alias_targets(self.alias)
        if not targets:
            raise IndexNotReadyError(self.alias)

        self._index = Index(name=self.alias)
        logger.info(f"Attached to {self.alias} → {', '.join(targets)}")
        return self._index

    async def update_studios(self, studios: Sequence[Studio]) -> Dict[str, Any]:
        """변경된 스튜디오 문서 갱신"""
        return await self.indexer.update_studios(self._require_index(), studios)

    async def search(
        self,
        options: QueryOptions,
        shuffle_seed: str = DEFAULT_SHUFFLE_SEED,
    ) -> SearchPage:
        """스튜디오 검색"""
        return await self.compiler.search(self._require_index(), options, shuffle_seed)

    async def close(self):
        """ES / DB 연결 종료"""
        await self.client.close()
        close_store = getattr(self.store, "close", None)
        if close_store is not None:
            await close_store()


# CLI 인터페이스
async def main(argv=None):
    """CLI 진입점"""
    import argparse

    parser = argparse.ArgumentParser(description="Studio Search")
    sub = parser.add_subparsers(dest="action", required=True)

    build = sub.add_parser("build", help="Rebuild the studio index")
    build.add_argument("--index-slice-size", type=int, default=None, help="Max documents per indexing call")

    search = sub.add_parser("search", help="Search studios")
    search.add_argument("--query", "-q", default="")
    search.add_argument("--favorite", action="store_true")
    search.add_argument("--bookmark", action="store_true")
    search.add_argument("--include", nargs="*", default=[], help="Label IDs that must all be present")
    search.add_argument("--exclude", nargs="*", default=[], help="Label IDs that must be absent")
    search.add_argument("--sort-by", default=None, help="added_on, name, bookmark, num_scenes or $shuffle")
    search.add_argument("--sort-dir", choices=["asc", "desc"], default="desc")
    search.add_argument("--page", type=int, default=0)
    search.add_argument("--skip", type=int, default=None)
    search.add_argument("--take", type=int, default=None)
    search.add_argument("--seed", default=DEFAULT_SHUFFLE_SEED, help="Shuffle seed")

    sub.add_parser("status", help="Show index status")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    service = StudioSearchService(
        ESIndexClient(),
        PostgresStudioStore(),
        slice_size=getattr(args, "index_slice_size", None),
    )

    try:
        if args.action == "build":
            stats = await service.build_index()
            print(f"\n{stats}")

        elif args.action == "search":
            options = QueryOptions(
                query=args.query,
                favorite=args.favorite,
                bookmark=args.bookmark,
                include=args.include,
                exclude=args.exclude,
                sort_by=args.sort_by,
                sort_dir=args.sort_dir,
                page=args.page,
                skip=args.skip,
                take=args.take,
            )
            await service.attach()
            page = await service.search(options, shuffle_seed=args.seed)
            print(f"\n=== {page.total:,} studios ===")
            for hit in page.hits:
                print(f"  {hit.id}  ({hit.score:.3f})")

        elif args.action == "status":
            status = await service.manager.get_index_status(service.alias)
            print("\n=== Studio Index Status ===")
            if status["exists"]:
                print(f"  {status['alias']} → {', '.join(status['indices'])}: "
                      f"{status['docs_count']:,} docs, {status['size_mb']} MB")
            else:
                print(f"  {status['alias']}: NOT EXISTS")

    finally:
        await service.close()


def cli():
    """콘솔 스크립트 진입점"""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
