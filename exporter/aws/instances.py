"""
exporter/aws/instances.py - EC2 인스턴스 사양 저장소

인스턴스 타입별 메모리(MiB)/vCPU 사양을 보관하고,
시간당 가격을 vCPU당/메모리 GB당 비용으로 정규화합니다.

사양 데이터는 ec2instances.info 카탈로그(JSON 배열)에서 로드하며,
cache_path를 지정하면 성공한 응답을 디스크에 저장해 두었다가
카탈로그 조회 실패 시 대신 사용합니다.

정규화 공식 (R = 7.2):
    memory_cost = price / (R * vcpu + memory_gib)
    vcpu_cost   = R * memory_cost

Usage:
    from exporter.aws.instances import InstanceStore

    store = InstanceStore()
    store.load(cache_path="/var/cache/cpe/instances.json")

    vcpu_cost, memory_cost = store.get_normalized_cost(0.0416, "t3.medium")
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from filelock import FileLock, Timeout

from exporter.config import settings
from exporter.exceptions import InstanceCatalogError

from .constants import CPU_MEM_RELATION, EC2_INSTANCES_INFO_URL

logger = logging.getLogger(__name__)

# 파일 락 타임아웃 (초)
FILE_LOCK_TIMEOUT = 10


@dataclass(frozen=True)
class Instance:
    """인스턴스 사양

    Attributes:
        memory_mib: 메모리 (MiB)
        vcpu: vCPU 수
    """

    memory_mib: int
    vcpu: int


UNKNOWN_INSTANCE = Instance(memory_mib=0, vcpu=0)


def parse_catalog(items: Any) -> dict[str, Instance]:
    """카탈로그 JSON 배열을 인스턴스 맵으로 변환

    Args:
        items: [{"instance_type": str, "vcpu": int, "memory": float(GiB)}, ...]

    Returns:
        {instance_type: Instance}

    Raises:
        ValueError: 배열이 아니거나 항목 형식이 잘못된 경우
    """
    if not isinstance(items, list):
        raise ValueError(f"JSON 배열이 아닙니다: {type(items).__name__}")

    instances: dict[str, Instance] = {}
    for item in items:
        instance_type = item.get("instance_type")
        if not instance_type:
            continue
        instances[instance_type] = Instance(
            memory_mib=int(float(item.get("memory") or 0) * 1024),  # GiB -> MiB
            vcpu=int(item.get("vcpu") or 0),
        )
    return instances


class InstanceStore:
    """인스턴스 사양 저장소

    수집 사이클 동안에는 읽기 전용이며, load()/refresh()는 새 딕셔너리를
    만든 뒤 참조를 한 번에 교체합니다.
    """

    def __init__(self, instances: dict[str, Instance] | None = None):
        self._instances: dict[str, Instance] = dict(instances or {})
        self._load_lock = threading.Lock()
        self._source: dict[str, Any] = {}

    @classmethod
    def from_map(cls, instances: dict[str, Instance]) -> InstanceStore:
        """미리 준비된 사양 맵으로 생성 (테스트/오프라인용)"""
        return cls(instances)

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, instance_type: object) -> bool:
        return instance_type in self._instances

    # =========================================================================
    # 조회
    # =========================================================================

    def get(self, instance_type: str) -> Instance:
        """인스턴스 사양 조회 (없으면 Instance(0, 0))"""
        return self._instances.get(instance_type, UNKNOWN_INSTANCE)

    def get_memory(self, instance_type: str) -> str:
        """메모리(MiB) 표시 문자열"""
        return str(self.get(instance_type).memory_mib)

    def get_vcpu(self, instance_type: str) -> str:
        """vCPU 수 표시 문자열"""
        return str(self.get(instance_type).vcpu)

    def get_normalized_cost(self, price: float, instance_type: str) -> tuple[float, float]:
        """시간당 가격을 vCPU당/메모리 GB당 비용으로 정규화

        Args:
            price: 인스턴스 시간당 가격
            instance_type: 인스턴스 타입

        Returns:
            (vcpu_cost, memory_cost). 알 수 없는 타입이거나 분모가 0이면 (0.0, 0.0)
        """
        instance = self._instances.get(instance_type)
        if instance is None:
            return 0.0, 0.0

        denominator = CPU_MEM_RELATION * instance.vcpu + instance.memory_mib / 1024
        if denominator == 0:
            return 0.0, 0.0

        memory_cost = price / denominator
        vcpu_cost = CPU_MEM_RELATION * memory_cost
        return vcpu_cost, memory_cost

    # =========================================================================
    # 로드
    # =========================================================================

    def load(
        self,
        session: requests.Session | None = None,
        url: str = EC2_INSTANCES_INFO_URL,
        cache_path: str | os.PathLike | None = None,
    ) -> int:
        """카탈로그를 조회하여 사양 맵 교체

        조회 실패 시 cache_path의 파일을 대신 사용합니다.

        Args:
            session: requests 세션 (None이면 모듈 함수 사용)
            url: 카탈로그 URL
            cache_path: 디스크 캐시 파일 경로 (None이면 캐시 안 함)

        Returns:
            로드된 인스턴스 타입 수

        Raises:
            InstanceCatalogError: 조회 실패 + 캐시 없음
        """
        self._source = {"session": session, "url": url, "cache_path": cache_path}

        with self._load_lock:
            try:
                items = self._fetch(session, url)
                instances = parse_catalog(items)
            except (requests.RequestException, ValueError, AttributeError, TypeError) as e:
                if cache_path is None:
                    raise InstanceCatalogError(url, "카탈로그 조회 실패", cause=e) from e
                logger.warning(f"인스턴스 카탈로그 조회 실패, 디스크 캐시 사용: {e}")
                instances = self._load_cache(Path(cache_path), cause=e)
            else:
                if cache_path is not None:
                    self._save_cache(Path(cache_path), items)

            self._instances = instances

        logger.info(f"인스턴스 타입 {len(instances)}개 로드")
        return len(instances)

    def refresh(self) -> bool:
        """마지막 load() 인자로 다시 로드

        실패하면 기존 사양 맵을 유지합니다.

        Returns:
            성공 여부
        """
        try:
            self.load(**self._source)
            return True
        except InstanceCatalogError as e:
            logger.warning(f"인스턴스 카탈로그 갱신 실패, 기존 데이터 유지: {e}")
            return False

    def _fetch(self, session: requests.Session | None, url: str) -> Any:
        http = session or requests
        response = http.get(url, timeout=(settings.HTTP_CONNECT_TIMEOUT, settings.HTTP_READ_TIMEOUT))
        response.raise_for_status()
        return response.json()

    def _load_cache(self, cache_path: Path, cause: Exception) -> dict[str, Instance]:
        if not cache_path.exists():
            raise InstanceCatalogError(str(cache_path), "카탈로그 조회 실패, 디스크 캐시 없음", cause=cause)

        try:
            with open(cache_path, encoding="utf-8") as f:
                return parse_catalog(json.load(f))
        except (OSError, ValueError, AttributeError, TypeError) as e:
            raise InstanceCatalogError(str(cache_path), "디스크 캐시 읽기 실패", cause=e) from e

    def _save_cache(self, cache_path: Path, items: Any) -> None:
        """카탈로그 원본을 디스크 캐시에 저장 (파일 락으로 동시 쓰기 방지)"""
        lock_path = cache_path.with_name(cache_path.name + ".lock")
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(lock_path, timeout=FILE_LOCK_TIMEOUT):
                with open(cache_path, "w", encoding="utf-8") as f:
                    json.dump(items, f)
            logger.debug(f"인스턴스 카탈로그 캐시 저장: {cache_path}")
        except Timeout:
            logger.warning(f"카탈로그 캐시 저장 타임아웃: {cache_path} (락 획득 실패)")
        except OSError as e:
            logger.warning(f"카탈로그 캐시 저장 오류: {e}")
