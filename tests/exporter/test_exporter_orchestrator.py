"""
tests/exporter/test_exporter_orchestrator.py - ScrapeOrchestrator 테스트
"""

import threading
from unittest.mock import MagicMock, patch

from conftest import create_http_response

from exporter.azure.types import RetailPriceItem
from exporter.config import AwsScrapeConfig, AzureScrapeConfig, ScrapeConfig
from exporter.exceptions import ClientConstructionError, RetailPricesAPIError
from exporter.orchestrator import ScrapeOrchestrator
from exporter.parallel.errors import ErrorCollector, ErrorSeverity
from exporter.types import MetricKind


def _azure_client(items=None, error=None):
    client = MagicMock()
    if error is not None:
        client.get_vm_prices.side_effect = error
    else:
        client.get_vm_prices.return_value = items or []
    return client


def _vm(sku, price=0.1):
    return RetailPriceItem(price, "westeurope", sku, "Virtual Machines", sku, "1 Hour")


class TestBuildTasks:
    """build_tasks 테스트"""

    def test_task_matrix(self, instances):
        """활성화된 (리전 x 수집기) 조합마다 작업 생성"""
        config = ScrapeConfig(
            aws=AwsScrapeConfig(regions=("us-east-1", "eu-west-1"), lifecycles=("spot", "ondemand"), saving_plan_types=("Compute",)),
            azure=AzureScrapeConfig(regions=("westeurope",)),
        )
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock())

        tasks = orchestrator.build_tasks(ErrorCollector())

        names = sorted((t.identifier, t.region) for t in tasks)
        assert len(tasks) == 7
        assert ("aws_savingplan", "eu-west-1") in names
        assert ("azure_ondemand", "westeurope") in names

    def test_spot_only(self, instances):
        config = ScrapeConfig(aws=AwsScrapeConfig(regions=("us-east-1",), lifecycles=("spot",)))

        tasks = ScrapeOrchestrator(config, instances, aws_clients=MagicMock()).build_tasks(ErrorCollector())

        assert [t.identifier for t in tasks] == ["aws_spot"]


class TestRunCycle:
    """run_cycle 테스트"""

    def test_azure_cycle(self, instances):
        """Azure 레코드 수집, 클라이언트는 작업 종료 시 닫힘"""
        client = _azure_client([_vm("Standard_D2s_v3"), _vm("Standard_B1s")])
        config = ScrapeConfig(azure=AzureScrapeConfig(regions=("westeurope",)))
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock(), azure_client_factory=lambda: client)

        result = orchestrator.run_cycle()

        assert len(result.records) == 2
        assert result.error_count == 0
        assert result.task_count == 1
        assert not result.timed_out
        client.close.assert_called_once()

    def test_failed_region_isolated(self, instances):
        """한 리전 실패가 다른 리전 결과에 영향 없음"""
        good = _azure_client([_vm("Standard_D2s_v3")])
        bad = _azure_client(error=RetailPricesAPIError("eastus", "재시도 소진", attempts=3))
        clients = iter([good, bad])
        config = ScrapeConfig(azure=AzureScrapeConfig(regions=("westeurope", "eastus")), max_workers=1)
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock(), azure_client_factory=lambda: next(clients))

        result = orchestrator.run_cycle()

        assert len(result.records) == 1
        assert result.error_count == 1
        error = orchestrator.errors.errors[0]
        assert error.provider == "azure_ondemand"
        assert error.region == "eastus"
        assert error.severity == ErrorSeverity.CRITICAL
        bad.close.assert_called_once()

    def test_client_construction_failure(self, instances):
        """클라이언트 생성 실패는 해당 작업만 실패"""
        aws_clients = MagicMock()
        aws_clients.ec2.side_effect = ClientConstructionError("aws_spot", "us-east-1", "ec2")
        config = ScrapeConfig(aws=AwsScrapeConfig(regions=("us-east-1",), lifecycles=("spot",)))
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=aws_clients)

        result = orchestrator.run_cycle()

        assert result.records == ()
        assert result.error_count == 1

    def test_ondemand_cycle_with_duplicate_keys(self, instances, mock_ec2_client):
        """동일 라벨 조합은 하나로 병합"""
        bulk = {
            "products": {
                "SKU1": {
                    "attributes": {
                        "instanceType": "m5.large",
                        "operatingSystem": "Linux",
                        "capacitystatus": "Used",
                        "tenancy": "Shared",
                        "preInstalledSw": "NA",
                    }
                }
            },
            "terms": {
                "OnDemand": {
                    "SKU1": {
                        "SKU1.JRTCKXETXF": {
                            "priceDimensions": {"SKU1.JRTCKXETXF.6YS6EN2CT7": {"pricePerUnit": {"USD": "0.096"}}}
                        }
                    }
                }
            },
        }
        http = MagicMock()
        http.get.return_value = create_http_response(200, bulk)
        aws_clients = MagicMock()
        aws_clients.ec2.return_value = mock_ec2_client
        config = ScrapeConfig(aws=AwsScrapeConfig(regions=("us-east-1",), lifecycles=("ondemand",)))
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=aws_clients, http=http)

        first = orchestrator.run_cycle()
        second = orchestrator.run_cycle()

        # 2개 AZ x 3개 메트릭
        assert len(first.records) == 6
        assert {r.key() for r in first.records} == {r.key() for r in second.records}
        assert sum(1 for r in first.records if r.kind == MetricKind.EC2) == 2

    def test_errors_reset_each_cycle(self, instances):
        bad = _azure_client(error=RetailPricesAPIError("westeurope", "실패"))
        good = _azure_client([_vm("Standard_D2s_v3")])
        clients = iter([bad, good])
        config = ScrapeConfig(azure=AzureScrapeConfig(regions=("westeurope",)))
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock(), azure_client_factory=lambda: next(clients))

        assert orchestrator.run_cycle().error_count == 1
        assert orchestrator.run_cycle().error_count == 0

    @patch("exporter.orchestrator.get_azure_ondemand_pricing")
    def test_cycle_timeout(self, mock_pricing, instances):
        """제한 시간 초과 시 미완료 작업은 타임아웃 에러로 집계"""
        release = threading.Event()
        mock_pricing.side_effect = lambda *args, **kwargs: release.wait(timeout=2)
        config = ScrapeConfig(azure=AzureScrapeConfig(regions=("westeurope",)), cycle_timeout_seconds=0.2)
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock(), azure_client_factory=MagicMock)

        result = orchestrator.run_cycle()
        release.set()

        assert result.timed_out
        assert result.error_count == 1
        assert orchestrator.errors.errors[0].error_code == "CycleTimeout"

    @patch("exporter.orchestrator.get_spot_pricing")
    def test_late_worker_errors_stay_in_their_cycle(self, mock_spot, instances):
        """타임아웃 후 늦게 끝난 워커의 에러는 다음 사이클 집계에 포함되지 않음"""
        release = threading.Event()
        late_written = threading.Event()
        collectors = []

        def fake_spot(region, config, store, errors, emit, ec2, start_time):
            collectors.append(errors)
            if len(collectors) == 1:
                release.wait(timeout=2)
                errors.collect_generic("InternalError", "늦은 응답", region, "describe_spot_price_history")
                late_written.set()
            else:
                # 이전 사이클 워커를 깨우고 그 에러 기록이 끝날 때까지 대기
                release.set()
                late_written.wait(timeout=2)

        mock_spot.side_effect = fake_spot
        config = ScrapeConfig(
            aws=AwsScrapeConfig(regions=("us-east-1",), lifecycles=("spot",)),
            cycle_timeout_seconds=0.5,
        )
        orchestrator = ScrapeOrchestrator(config, instances, aws_clients=MagicMock())

        first = orchestrator.run_cycle()
        second = orchestrator.run_cycle()

        assert first.timed_out
        assert first.error_count == 1
        assert late_written.is_set()
        assert not second.timed_out
        assert second.error_count == 0
        assert collectors[0] is not collectors[1]
        assert collectors[0].count == 2
        assert orchestrator.errors is collectors[1]
