"""
pytest 공통 fixture 정의
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

from search.es_client import ESIndexClient, Index, SearchPage
from search.es_indices import ESIndexManager
from store.models import Label, Studio


class FakeStudioStore:
    """메모리 기반 StudioStore"""

    def __init__(self, studios=None, labels=None, scenes=None):
        self.studios: List[Studio] = list(studios or [])
        self.labels: Dict[str, Label] = {label.id: label for label in (labels or [])}
        self.scenes: Dict[str, List[str]] = dict(scenes or {})
        self.closed = False

    async def get_all(self) -> List[Studio]:
        return list(self.studios)

    async def get_labels(self, studio: Studio) -> List[Label]:
        return [self.labels[label_id] for label_id in studio.label_ids if label_id in self.labels]

    async def get_scenes(self, studio: Studio) -> List[str]:
        return list(self.scenes.get(studio.id, []))

    async def close(self):
        self.closed = True


def make_studios(count: int) -> List[Studio]:
    return [
        Studio(id=f"st_{i}", name=f"Studio {i}", added_on=1_600_000_000_000 + i)
        for i in range(count)
    ]


@pytest.fixture
def labels():
    return [
        Label(id="lb_action", name="Action", aliases=["Fight", "Combat"]),
        Label(id="lb_drama", name="Drama"),
        Label(id="lb_hd", name="HD", aliases=["1080p"]),
    ]


@pytest.fixture
def studio():
    return Studio(
        id="st_acme",
        name="Acme Pictures",
        added_on=1_600_000_000_000,
        label_ids=["lb_action", "lb_hd"],
        bookmark=1_650_000_000_000,
        favorite=True,
    )


@pytest.fixture
def store(studio, labels):
    return FakeStudioStore(
        studios=[studio],
        labels=labels,
        scenes={"st_acme": ["sc_1", "sc_2", "sc_3"]},
    )


@pytest.fixture
def mock_index_client():
    """ES 호출 없이 슬라이스 크기만 기록하는 인덱스 클라이언트"""
    client = MagicMock(spec=ESIndexClient)
    client.index_calls = []

    async def fake_index(index, docs, fields):
        client.index_calls.append(len(docs))
        return len(docs)

    client.create = AsyncMock(side_effect=lambda name, mapping=None: Index(name=name))
    client.index = AsyncMock(side_effect=fake_index)
    client.update = AsyncMock(side_effect=lambda index, docs, fields: {"updated": len(docs)})
    client.search = AsyncMock(return_value=SearchPage(total=0, hits=[]))
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_index_manager():
    manager = MagicMock(spec=ESIndexManager)
    manager.get_alias_targets = AsyncMock(return_value=[])
    manager.swap_alias = AsyncMock(return_value=[])
    manager.delete_index = AsyncMock(return_value=True)
    manager.refresh_index = AsyncMock()
    manager.get_index_status = AsyncMock()
    return manager


@pytest.fixture
def mock_es():
    """AsyncElasticsearch 대역"""
    es = MagicMock()
    es.search = AsyncMock()
    es.close = AsyncMock()
    es.indices.create = AsyncMock()
    return es
