"""
Elasticsearch 인덱스 클라이언트

스튜디오 검색용 Elasticsearch 래퍼.
create / index / update / search 네 가지 연산만 제공하며,
필터 트리(FilterNode)와 정렬(SortSpec)을 ES 쿼리 DSL로 변환합니다.

모든 호출은 네트워크 왕복 1회이며, 캐시나 재시도는 하지 않습니다.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from elasticsearch import AsyncElasticsearch
from elasticsearch.exceptions import ApiError, TransportError
from elasticsearch.helpers import BulkIndexError, async_bulk

from search.config import ES_TIMEOUT, STUDIO_MAPPING, es_hosts
from search.documents import FIELDS, StudioSearchDoc
from search.es_indices import load_index_body
from search.filters import (
    Condition,
    FilterNode,
    GroupType,
    Grouping,
    Operation,
    SortSpec,
    ValueType,
)

logger = logging.getLogger(__name__)

RANGE_OPERATORS = {
    Operation.GT: "gt",
    Operation.GTE: "gte",
    Operation.LT: "lt",
    Operation.LTE: "lte",
}


@dataclass
class Index:
    """ES 인덱스 핸들 (인덱스명 또는 alias)"""
    name: str
    fields: List[str] = field(default_factory=lambda: list(FIELDS))


@dataclass
class SearchRequest:
    """검색 요청"""
    query: str = ""
    skip: int = 0
    take: int = 24
    sort: Optional[SortSpec] = None
    filter: Optional[Grouping] = None


@dataclass
class SearchHit:
    """검색 결과 문서 (ID + 점수)"""
    id: str
    score: float


@dataclass
class SearchPage:
    """검색 결과 페이지"""
    total: int
    hits: List[SearchHit] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [hit.id for hit in self.hits]


# === FilterNode → ES query DSL ===

def condition_to_query(condition: Condition) -> Dict[str, Any]:
    """단일 조건 변환"""
    op = condition.operation
    prop = condition.property

    if op in RANGE_OPERATORS:
        return {"range": {prop: {RANGE_OPERATORS[op]: condition.value}}}

    # "=", "?" (배열 포함) 모두 term 쿼리 (배열 필드의 term은 원소 일치)
    term = {"term": {prop: condition.value}}
    if op == Operation.NEQ:
        return {"bool": {"must_not": [term]}}
    return term


def filter_to_query(node: FilterNode) -> Dict[str, Any]:
    """
    필터 트리 재귀 변환

    AND → bool.filter, OR → bool.should, NOT → bool.must_not.
    자식이 없는 그룹은 match_all (아무 문서도 제외하지 않음).
    """
    if isinstance(node, Condition):
        return condition_to_query(node)

    if node.is_empty:
        return {"match_all": {}}

    children = [filter_to_query(child) for child in node.children]

    if node.type == GroupType.AND:
        return {"bool": {"filter": children}}
    if node.type == GroupType.OR:
        return {"bool": {"should": children, "minimum_should_match": 1}}
    return {"bool": {"must_not": children}}


def build_text_query(query: str, fields: Sequence[str]) -> Dict[str, Any]:
    """자유 텍스트 쿼리 (검색어 없으면 전체)"""
    if not query or not query.strip():
        return {"match_all": {}}
    return {
        "multi_match": {
            "query": query,
            "fields": list(fields),
            "type": "best_fields",
            "operator": "or",
            "fuzziness": "AUTO",
            "prefix_length": 2,
        }
    }


def build_query(request: SearchRequest, fields: Sequence[str]) -> Dict[str, Any]:
    """
    검색어 + 필터 + (셔플) 결합 쿼리

    셔플 점수는 시드와 문서의 _seq_no로 계산합니다. update로 다시 쓰인 문서는
    _seq_no가 바뀌므로 같은 시드라도 증분 갱신 이후에는 순서가 달라집니다.
    전체 재빌드 직후에는 같은 시드 → 같은 순서가 유지됩니다.
    """
    query_body: Dict[str, Any] = {
        "bool": {
            "must": [build_text_query(request.query, fields)],
        }
    }

    if request.filter is not None and not request.filter.is_empty:
        query_body["bool"]["filter"] = [filter_to_query(request.filter)]

    if request.sort is not None and request.sort.is_shuffle:
        # 시드 고정 랜덤 점수: 같은 시드면 같은 순서
        return {
            "function_score": {
                "query": query_body,
                "random_score": {"seed": request.sort.seed, "field": "_seq_no"},
                "boost_mode": "replace",
            }
        }

    return query_body


def build_sort(sort: Optional[SortSpec]) -> Optional[List[Dict[str, Any]]]:
    """정렬 변환 (None이면 엔진 기본 정렬)"""
    if sort is None:
        return None

    if sort.is_shuffle:
        return [{"_score": {"order": "desc"}}]

    order = "asc" if sort.ascending else "desc"

    if sort.sort_type == ValueType.STRING:
        return [{f"{sort.sort_by}.keyword": {"order": order}}]
    if isinstance(sort.sort_type, ValueType):
        return [{sort.sort_by: {"order": order}}]

    # 타입을 모르는 필드: 매핑이 없어도 ES가 실패하지 않도록 unmapped_type 지정
    return [{sort.sort_by: {"order": order, "unmapped_type": "keyword"}}]


class ESIndexClient:
    """
    Elasticsearch 인덱스 클라이언트

    사용 예:
        client = ESIndexClient()
        index = await client.create("studios-20240101")
        await client.index(index, docs, FIELDS)
        page = await client.search(index, SearchRequest(query="acme"))
    """

    def __init__(
        self,
        client: Optional[AsyncElasticsearch] = None,
        hosts: Optional[List[str]] = None,
        timeout: int = ES_TIMEOUT,
    ):
        """
        클라이언트 초기화

        Args:
            client: 외부에서 생성한 AsyncElasticsearch (주입 시 hosts/timeout 무시)
            hosts: ES 호스트 목록 (기본값: 환경 변수 기반)
            timeout: 요청 타임아웃 (초)
        """
        self.hosts = hosts or es_hosts()
        self.timeout = timeout
        self._async_client: Optional[AsyncElasticsearch] = client

    @property
    def async_client(self) -> AsyncElasticsearch:
        """비동기 클라이언트 (lazy initialization, 재시도 없음)"""
        if self._async_client is None:
            self._async_client = AsyncElasticsearch(
                hosts=self.hosts,
                request_timeout=self.timeout,
                retry_on_timeout=False,
                max_retries=0,
            )
        return self._async_client

    async def create(self, name: str, mapping: str = STUDIO_MAPPING) -> Index:
        """
        인덱스 생성

        같은 이름으로 두 번 호출하면 ES 오류가 그대로 전파됩니다.

        Args:
            name: 인덱스명
            mapping: 사용할 매핑 파일 이름 (인덱스명과 무관)

        Returns:
            Index 핸들
        """
        body = load_index_body(mapping)
        try:
            await self.async_client.indices.create(
                index=name,
                settings=body["settings"],
                mappings=body["mappings"],
            )
        except (ApiError, TransportError) as e:
            logger.error(f"Failed to create index {name}: {e}")
            raise

        logger.info(f"Index created: {name}")
        return Index(name=name)

    async def index(
        self,
        index: Index,
        documents: Sequence[StudioSearchDoc],
        fields: Sequence[str] = FIELDS,
    ) -> int:
        """
        문서 일괄 색인 (추가 또는 덮어쓰기)

        Args:
            index: 대상 인덱스
            documents: 검색 문서 목록
            fields: 텍스트 검색 대상 필드

        Returns:
            ES가 보고한 색인 성공 건수
        """
        index.fields = list(fields)
        if not documents:
            return 0

        actions = [
            {
                "_index": index.name,
                "_id": doc.id,
                "_source": doc.to_source(),
            }
            for doc in documents
        ]

        start_time = time.time()
        try:
            success, _ = await async_bulk(
                self.async_client,
                actions,
                chunk_size=len(actions),
                raise_on_error=True,
            )
        except (ApiError, TransportError, BulkIndexError) as e:
            logger.error(f"Bulk indexing error on {index.name}: {e}")
            raise

        logger.info(f"Indexed {success:,} docs into {index.name} in {time.time() - start_time:.2f}s")
        return success

    async def update(
        self,
        index: Index,
        documents: Sequence[StudioSearchDoc],
        fields: Sequence[str] = FIELDS,
    ) -> Dict[str, Any]:
        """
        기존 문서 갱신 (같은 _id, 없으면 생성)

        Args:
            index: 대상 인덱스
            documents: 검색 문서 목록
            fields: 텍스트 검색 대상 필드

        Returns:
            {"updated": 성공 건수}
        """
        index.fields = list(fields)
        if not documents:
            return {"updated": 0}

        actions = [
            {
                "_op_type": "update",
                "_index": index.name,
                "_id": doc.id,
                "doc": doc.to_source(),
                "doc_as_upsert": True,
            }
            for doc in documents
        ]

        try:
            success, _ = await async_bulk(
                self.async_client,
                actions,
                chunk_size=len(actions),
                raise_on_error=True,
            )
        except (ApiError, TransportError, BulkIndexError) as e:
            logger.error(f"Bulk update error on {index.name}: {e}")
            raise

        logger.info(f"Updated {success:,} docs in {index.name}")
        return {"updated": success}

    async def search(self, index: Index, request: SearchRequest) -> SearchPage:
        """
        검색 실행

        Args:
            index: 대상 인덱스 (또는 alias)
            request: 검색어, 필터 트리, 정렬, skip/take

        Returns:
            SearchPage (전체 건수 + 문서 ID/점수)
        """
        kwargs: Dict[str, Any] = {
            "index": index.name,
            "query": build_query(request, index.fields),
            "from_": request.skip,
            "size": request.take,
            "track_total_hits": True,
            "source": False,
        }

        sort = build_sort(request.sort)
        if sort is not None:
            kwargs["sort"] = sort

        try:
            response = await self.async_client.search(**kwargs)
        except (ApiError, TransportError) as e:
            logger.error(f"ES search error on {index.name}: {e}")
            raise

        hits = [
            SearchHit(id=hit["_id"], score=hit.get("_score") or 0.0)
            for hit in response["hits"]["hits"]
        ]
        total = response["hits"]["total"]["value"]

        logger.info(f"ES search: query='{request.query}', index={index.name}, hits={len(hits)}, total={total}")
        return SearchPage(total=total, hits=hits)

    async def close(self):
        """비동기 클라이언트 연결 종료"""
        if self._async_client:
            await self._async_client.close()
            self._async_client = None
