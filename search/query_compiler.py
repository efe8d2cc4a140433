"""
스튜디오 검색 쿼리 컴파일러

QueryOptions → 필터 트리(Grouping) + 정렬(SortSpec) + skip/take 변환 후
검색을 한 번 실행합니다. 자유 텍스트 검색어는 필터 트리에 넣지 않고
검색 요청에 따로 전달합니다.
"""

import logging
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from search.config import DEFAULT_SHUFFLE_SEED, PAGE_SIZE
from search.es_client import ESIndexClient, Index, SearchPage, SearchRequest
from search.filters import (
    SHUFFLE,
    Condition,
    GroupType,
    Grouping,
    Operation,
    SortSpec,
    ValueType,
    contains,
)

logger = logging.getLogger(__name__)

# 정렬 가능 필드 → 값 타입
SORT_TYPES: Dict[str, ValueType] = {
    "added_on": ValueType.NUMBER,
    "name": ValueType.STRING,
    "bookmark": ValueType.NUMBER,
    "num_scenes": ValueType.NUMBER,
}


class QueryOptions(BaseModel):
    """구조화된 검색 옵션 (쿼리 추출기 출력)"""
    query: str = Field(default="", description="자유 텍스트 검색어")
    favorite: bool = Field(default=False, description="즐겨찾기만")
    bookmark: bool = Field(default=False, description="북마크만")
    include: List[str] = Field(default_factory=list, description="모두 포함해야 하는 라벨 ID")
    exclude: List[str] = Field(default_factory=list, description="하나도 포함하면 안 되는 라벨 ID")
    sort_by: Optional[str] = Field(default=None, description="정렬 필드 또는 $shuffle")
    sort_dir: Literal["asc", "desc"] = Field(default="desc", description="정렬 방향")
    skip: Optional[int] = Field(default=None, ge=0, description="건너뛸 문서 수")
    take: Optional[int] = Field(default=None, ge=1, description="페이지 크기")
    page: int = Field(default=0, ge=0, description="페이지 번호 (skip/take 없을 때)")

    @field_validator("include", "exclude")
    @classmethod
    def dedupe_labels(cls, value: List[str]) -> List[str]:
        # 순서 유지 중복 제거
        return list(dict.fromkeys(value))

    class Config:
        json_schema_extra = {
            "example": {
                "query": "acme",
                "favorite": True,
                "include": ["lb_1", "lb_2"],
                "exclude": ["lb_3"],
                "sort_by": "added_on",
                "sort_dir": "desc",
                "page": 0,
            }
        }


def compile_filter(options: QueryOptions) -> Grouping:
    """
    필터 트리 생성

    루트 AND 그룹에 해당하는 조건만 추가합니다.
    - favorite: favorite = true
    - bookmark: bookmark > 0
    - include: 모든 라벨 포함 (중첩 AND)
    - exclude: 라벨별 NOT 그룹

    Returns:
        루트 Grouping (조건이 없으면 자식 0개)
    """
    root = Grouping(GroupType.AND)

    if options.favorite:
        root.add(Condition(Operation.EQ, "favorite", ValueType.BOOLEAN, True))

    if options.bookmark:
        root.add(Condition(Operation.GT, "bookmark", ValueType.NUMBER, 0))

    if options.include:
        root.add(Grouping(
            GroupType.AND,
            [contains("labels", label_id) for label_id in options.include],
        ))

    for label_id in options.exclude:
        root.add(Grouping(GroupType.NOT, [contains("labels", label_id)]))

    return root


def resolve_sort(options: QueryOptions, shuffle_seed: str = DEFAULT_SHUFFLE_SEED) -> Optional[SortSpec]:
    """
    정렬 설정 결정

    - sort_by 없음: None (엔진 기본 정렬)
    - $shuffle: 내림차순 고정, sort_type에 시드
    - 알 수 없는 필드: sort_type=None 으로 그대로 전달
    """
    if not options.sort_by:
        return None

    if options.sort_by == SHUFFLE:
        return SortSpec(sort_by=SHUFFLE, ascending=False, sort_type=shuffle_seed)

    sort_type = SORT_TYPES.get(options.sort_by)
    if sort_type is None:
        logger.warning(f"Unknown sort field '{options.sort_by}', forwarding without type")

    return SortSpec(
        sort_by=options.sort_by,
        ascending=options.sort_dir == "asc",
        sort_type=sort_type,
    )


def resolve_pagination(options: QueryOptions) -> Tuple[int, int]:
    """(skip, take) 결정: 명시값 우선, 없으면 page * PAGE_SIZE"""
    skip = options.skip if options.skip is not None else options.page * PAGE_SIZE
    take = options.take if options.take is not None else PAGE_SIZE
    return skip, take


class QueryCompiler:
    """
    QueryOptions 기반 스튜디오 검색

    사용 예:
        compiler = QueryCompiler(client)
        page = await compiler.search(index, QueryOptions(query="acme", favorite=True))
    """

    def __init__(self, client: ESIndexClient):
        self.client = client

    def compile(self, options: QueryOptions, shuffle_seed: str = DEFAULT_SHUFFLE_SEED) -> SearchRequest:
        """QueryOptions → SearchRequest (빈 루트 필터는 생략)"""
        root = compile_filter(options)
        skip, take = resolve_pagination(options)

        return SearchRequest(
            query=options.query,
            skip=skip,
            take=take,
            sort=resolve_sort(options, shuffle_seed),
            filter=None if root.is_empty else root,
        )

    async def search(
        self,
        index: Index,
        options: QueryOptions,
        shuffle_seed: str = DEFAULT_SHUFFLE_SEED,
    ) -> SearchPage:
        """
        검색 실행 (ES 호출 1회)

        Args:
            index: 대상 인덱스
            options: 검색 옵션
            shuffle_seed: $shuffle 정렬 시드

        Returns:
            ES 결과 페이지 (가공 없음)
        """
        logger.info(f"Searching studios for '{options.query}'...")
        request = self.compile(options, shuffle_seed)
        return await self.client.search(index, request)
