"""
tests/exporter/aws/test_aws_instances.py - InstanceStore 테스트
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from exporter.aws.instances import Instance, InstanceStore, parse_catalog
from exporter.exceptions import InstanceCatalogError

CATALOG = [
    {"instance_type": "t3.medium", "vcpu": 2, "memory": 4.0},
    {"instance_type": "m5.large", "vcpu": 2, "memory": 8},
    {"instance_type": "t2.nano", "vcpu": 1, "memory": 0.5},
]


def _session(json_data=None, error=None):
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        response = MagicMock()
        response.json.return_value = json_data
        session.get.return_value = response
    return session


class TestParseCatalog:
    """parse_catalog 테스트"""

    def test_gib_to_mib(self):
        """메모리 GiB → MiB 변환"""
        instances = parse_catalog(CATALOG)

        assert instances["t3.medium"] == Instance(memory_mib=4096, vcpu=2)
        assert instances["t2.nano"].memory_mib == 512

    def test_not_a_list(self):
        with pytest.raises(ValueError):
            parse_catalog({"instance_type": "t3.medium"})


class TestNormalizedCost:
    """get_normalized_cost 테스트"""

    def test_formula(self, instances):
        """memory_cost = price / (7.2 * vcpu + memory_gib), vcpu_cost = 7.2 * memory_cost"""
        vcpu_cost, memory_cost = instances.get_normalized_cost(0.0416, "t3.medium")

        expected_memory = 0.0416 / (7.2 * 2 + 4)
        assert memory_cost == pytest.approx(expected_memory)
        assert vcpu_cost == pytest.approx(7.2 * expected_memory)
        # 재구성: vcpu * vcpu_cost + memory_gib * memory_cost == price
        assert 2 * vcpu_cost + 4 * memory_cost == pytest.approx(0.0416)

    def test_unknown_type(self, instances):
        """알 수 없는 타입은 (0, 0)"""
        assert instances.get_normalized_cost(1.0, "x9.huge") == (0.0, 0.0)

    def test_zero_denominator(self):
        store = InstanceStore.from_map({"weird.type": Instance(memory_mib=0, vcpu=0)})

        assert store.get_normalized_cost(1.0, "weird.type") == (0.0, 0.0)

    def test_display_strings(self, instances):
        assert instances.get_memory("m5.large") == "8192"
        assert instances.get_vcpu("c5.xlarge") == "4"
        assert instances.get_memory("unknown") == "0"


class TestInstanceStoreLoad:
    """InstanceStore.load 테스트"""

    def test_load_from_url(self):
        store = InstanceStore()

        count = store.load(session=_session(CATALOG), url="https://catalog.example/instances.json")

        assert count == 3
        assert "m5.large" in store

    def test_load_failure_without_cache(self):
        """조회 실패 + 캐시 없음 → InstanceCatalogError"""
        store = InstanceStore()

        with pytest.raises(InstanceCatalogError):
            store.load(session=_session(error=requests.ConnectionError("refused")))

    def test_success_writes_cache(self, tmp_path):
        cache_path = tmp_path / "cache" / "instances.json"
        store = InstanceStore()

        store.load(session=_session(CATALOG), cache_path=cache_path)

        assert json.loads(cache_path.read_text(encoding="utf-8")) == CATALOG

    def test_failure_falls_back_to_cache(self, tmp_path):
        """조회 실패 시 디스크 캐시 사용"""
        cache_path = tmp_path / "instances.json"
        cache_path.write_text(json.dumps(CATALOG), encoding="utf-8")
        store = InstanceStore()

        count = store.load(session=_session(error=requests.Timeout("slow")), cache_path=cache_path)

        assert count == 3
        assert store.get("t3.medium").vcpu == 2

    def test_failure_with_missing_cache_file(self, tmp_path):
        store = InstanceStore()

        with pytest.raises(InstanceCatalogError):
            store.load(session=_session(error=requests.Timeout("slow")), cache_path=tmp_path / "missing.json")

    def test_invalid_json_payload(self):
        """배열이 아닌 응답"""
        store = InstanceStore()

        with pytest.raises(InstanceCatalogError):
            store.load(session=_session({"not": "a list"}))

    def test_refresh_keeps_previous_on_failure(self):
        """갱신 실패 시 기존 데이터 유지"""
        session = _session(CATALOG)
        store = InstanceStore()
        store.load(session=session)

        session.get.side_effect = requests.ConnectionError("down")

        assert store.refresh() is False
        assert len(store) == 3
