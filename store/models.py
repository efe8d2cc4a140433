"""
스튜디오 도메인 엔티티

검색 코어에서는 읽기 전용으로만 사용합니다.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Label:
    """라벨 (이름 + 별칭)"""
    id: str
    name: str
    aliases: List[str] = field(default_factory=list)


@dataclass
class Studio:
    """스튜디오 엔티티"""
    id: str
    name: str
    added_on: int  # epoch ms
    label_ids: List[str] = field(default_factory=list)
    bookmark: Optional[int] = None  # 북마크 시각 (epoch ms), 없으면 None
    favorite: bool = False
