# Studio Elasticsearch Search Module
"""
Elasticsearch 기반 스튜디오 검색 모듈

주요 컴포넌트:
- documents: Studio → 검색 문서 변환
- es_client: 인덱스 생성/색인/갱신/검색 클라이언트
- es_indices: 매핑 로드, alias 교체 등 인덱스 관리
- indexer: 슬라이스 단위 배치 인덱싱
- query_compiler: QueryOptions → 필터 트리 + 정렬 + 페이지
- studio_search: 빌드 후 alias 교체 방식의 검색 서비스
"""

from .documents import FIELDS, StudioSearchDoc, create_studio_search_doc
from .es_client import ESIndexClient, Index, SearchHit, SearchPage, SearchRequest
from .es_indices import ESIndexManager
from .indexer import BatchIndexer, IndexStats
from .query_compiler import QueryCompiler, QueryOptions
from .studio_search import StudioSearchService

__all__ = [
    "FIELDS",
    "StudioSearchDoc",
    "create_studio_search_doc",
    "ESIndexClient",
    "Index",
    "SearchHit",
    "SearchPage",
    "SearchRequest",
    "ESIndexManager",
    "BatchIndexer",
    "IndexStats",
    "QueryCompiler",
    "QueryOptions",
    "StudioSearchService",
]
