"""
스튜디오 검색 문서

Studio 엔티티를 평탄화된 검색 문서(StudioSearchDoc)로 변환합니다.
문서는 재인덱싱 때마다 엔티티로부터 통째로 다시 생성됩니다.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from store.models import Studio
from store.studio_store import StudioStore

# 자유 텍스트 검색 대상 필드
FIELDS = ["name", "label_names"]


@dataclass(frozen=True)
class StudioSearchDoc:
    """스튜디오 검색 문서"""
    id: str
    added_on: int
    name: str
    labels: List[str] = field(default_factory=list)       # 정확 일치 필터용 라벨 ID
    label_names: List[str] = field(default_factory=list)  # 텍스트 검색용 라벨 이름 + 별칭
    bookmark: Optional[int] = None
    favorite: bool = False
    num_scenes: int = 0

    def to_source(self) -> Dict[str, Any]:
        """ES _source 본문 (id는 _id로 별도 전달)"""
        source = asdict(self)
        source.pop("id")
        return source


async def create_studio_search_doc(studio: Studio, store: StudioStore) -> StudioSearchDoc:
    """
    스튜디오 → 검색 문서 변환

    Args:
        studio: 변환할 스튜디오 (변경하지 않음)
        store: 라벨/장면 조회용 도메인 저장소

    Returns:
        StudioSearchDoc
    """
    labels = await store.get_labels(studio)
    scenes = await store.get_scenes(studio)

    label_names = []
    for label in labels:
        label_names.append(label.name)
        label_names.extend(label.aliases)

    return StudioSearchDoc(
        id=studio.id,
        added_on=studio.added_on,
        name=studio.name,
        labels=[label.id for label in labels],
        label_names=label_names,
        bookmark=studio.bookmark,
        favorite=studio.favorite,
        num_scenes=len(scenes),
    )
