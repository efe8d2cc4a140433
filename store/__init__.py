# Studio 도메인 저장소
"""
스튜디오 도메인 데이터 접근 모듈

주요 컴포넌트:
- models: Studio, Label 엔티티
- studio_store: StudioStore 프로토콜 및 PostgreSQL 구현
"""

from .models import Label, Studio
from .studio_store import PostgresStudioStore, StudioStore

__all__ = [
    "Label",
    "Studio",
    "PostgresStudioStore",
    "StudioStore",
]
