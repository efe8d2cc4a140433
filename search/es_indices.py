"""
Elasticsearch 인덱스 관리

설정/매핑 로드, alias 교체, 삭제, 새로고침, 상태 확인을 담당합니다.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from elasticsearch import AsyncElasticsearch
from elasticsearch.exceptions import NotFoundError

from search.config import MAPPINGS_DIR, SETTINGS_PATH, es_hosts

logger = logging.getLogger(__name__)


def _load_settings() -> Dict[str, Any]:
    """settings.json 로드"""
    if not SETTINGS_PATH.exists():
        logger.warning(f"Settings file not found: {SETTINGS_PATH}")
        return {}

    with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def load_index_body(mapping: str) -> Dict[str, Any]:
    """
    인덱스 생성용 settings + mappings 로드

    Args:
        mapping: 매핑 파일 이름 (mappings/<mapping>.json)

    Returns:
        {"settings": ..., "mappings": ...}
    """
    mapping_path = MAPPINGS_DIR / f"{mapping}.json"
    if not mapping_path.exists():
        raise FileNotFoundError(f"Mapping file not found: {mapping_path}")

    with open(mapping_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {
        "settings": _load_settings().get("settings", {}),
        "mappings": data.get("mappings", {}),
    }


def versioned_index_name(alias: str, now: Optional[datetime] = None) -> str:
    """빌드마다 새 물리 인덱스명 생성"""
    now = now or datetime.now()
    return f"{alias}-{now.strftime('%Y%m%d%H%M%S%f')}"


class ESIndexManager:
    """
    Elasticsearch 인덱스 관리자

    alias 하나가 항상 완성된 물리 인덱스 하나를 가리키도록 관리합니다.

    사용 예:
        manager = ESIndexManager()
        await manager.swap_alias("studios", "studios-20240101120000")
        status = await manager.get_index_status("studios")
    """

    def __init__(
        self,
        client: Optional[AsyncElasticsearch] = None,
        hosts: Optional[List[str]] = None,
    ):
        """
        인덱스 관리자 초기화

        Args:
            client: 외부에서 생성한 AsyncElasticsearch (ESIndexClient와 공유 가능)
            hosts: ES 호스트 목록
        """
        self.hosts = hosts or es_hosts()
        self._async_client: Optional[AsyncElasticsearch] = client

    @property
    def async_client(self) -> AsyncElasticsearch:
        """비동기 클라이언트"""
        if self._async_client is None:
            self._async_client = AsyncElasticsearch(hosts=self.hosts)
        return self._async_client

    async def get_alias_targets(self, alias: str) -> List[str]:
        """alias가 가리키는 물리 인덱스 목록 (없으면 빈 목록)"""
        try:
            response = await self.async_client.indices.get_alias(name=alias)
        except NotFoundError:
            return []
        return sorted(response.keys())

    async def swap_alias(self, alias: str, index_name: str) -> List[str]:
        """
        alias를 새 인덱스로 원자적으로 교체

        remove + add 를 update_aliases 한 번으로 처리하므로
        검색 요청은 항상 이전 또는 새 인덱스 중 하나만 봅니다.

        Args:
            alias: alias명
            index_name: 새 물리 인덱스명

        Returns:
            교체 전 alias가 가리키던 인덱스 목록
        """
        previous = await self.get_alias_targets(alias)

        actions: List[Dict[str, Any]] = [
            {"remove": {"index": old, "alias": alias}}
            for old in previous
            if old != index_name
        ]
        actions.append({"add": {"index": index_name, "alias": alias}})

        await self.async_client.indices.update_aliases(actions=actions)
        logger.info(f"Alias swapped: {alias} → {index_name} (previous: {previous or 'none'})")
        return [old for old in previous if old != index_name]

    async def delete_index(self, index_name: str) -> bool:
        """
        인덱스 삭제

        Args:
            index_name: 삭제할 인덱스명

        Returns:
            삭제 여부 (없던 인덱스면 False)
        """
        try:
            await self.async_client.indices.delete(index=index_name)
        except NotFoundError:
            logger.info(f"Index does not exist: {index_name}")
            return False

        logger.info(f"Index deleted: {index_name}")
        return True

    async def refresh_index(self, index_name: str):
        """인덱싱된 문서를 검색 가능하게 만듭니다."""
        await self.async_client.indices.refresh(index=index_name)
        logger.info(f"Index refreshed: {index_name}")

    async def get_index_status(self, alias: str) -> Dict[str, Any]:
        """
        alias 상태 조회

        Returns:
            {"alias", "exists", "indices", "docs_count", "size_mb"}
        """
        targets = await self.get_alias_targets(alias)
        if not targets:
            return {"alias": alias, "exists": False, "indices": [], "docs_count": 0, "size_mb": 0}

        stats = await self.async_client.indices.stats(index=alias)
        docs_count = 0
        size_bytes = 0
        for index_name in targets:
            primaries = stats["indices"][index_name]["primaries"]
            docs_count += primaries["docs"]["count"]
            size_bytes += primaries["store"]["size_in_bytes"]

        return {
            "alias": alias,
            "exists": True,
            "indices": targets,
            "docs_count": docs_count,
            "size_mb": round(size_bytes / (1024 * 1024), 2),
        }

    async def close(self):
        """비동기 클라이언트 종료"""
        if self._async_client:
            await self._async_client.close()
            self._async_client = None
