"""
tests/exporter/azure/test_azure_ondemand.py - Azure VM 가격 수집 테스트
"""

from unittest.mock import MagicMock

import pytest

from exporter.azure.ondemand import get_azure_ondemand_pricing
from exporter.azure.types import RetailPriceItem, classify_os
from exporter.config import AzureScrapeConfig, compile_regexes
from exporter.exceptions import RetailPricesAPIError
from exporter.types import Lifecycle, MetricKind


def _item(sku, product="Virtual Machines DSv3 Series", price=0.096):
    return RetailPriceItem(
        retail_price=price,
        arm_region_name="westeurope",
        arm_sku_name=sku,
        product_name=product,
        meter_name=sku,
        unit_of_measure="1 Hour",
    )


class TestClassifyOs:
    """classify_os 테스트"""

    def test_windows(self):
        assert classify_os("Virtual Machines DSv3 Series Windows") == "Windows"

    def test_linux(self):
        assert classify_os("Virtual Machines DSv3 Series") == "Linux"


class TestGetAzureOndemandPricing:
    """get_azure_ondemand_pricing 테스트"""

    def test_records(self, azure_config, emitted):
        client = MagicMock()
        client.get_vm_prices.return_value = [_item("Standard_D2s_v3")]

        get_azure_ondemand_pricing("westeurope", azure_config, client, emitted.append)

        client.get_vm_prices.assert_called_once_with("westeurope", ("Linux",))
        assert len(emitted) == 1
        record = emitted[0]
        assert record.kind == MetricKind.AZURE_VM
        assert record.lifecycle == Lifecycle.ONDEMAND
        assert record.labels() == {
            "instance_lifecycle": "ondemand",
            "instance_type": "Standard_D2s_v3",
            "region": "westeurope",
            "operating_system": "Linux",
        }

    def test_os_filter(self, emitted):
        """설정되지 않은 OS 항목은 제외"""
        config = AzureScrapeConfig(regions=("westeurope",), operating_systems=("Windows",))
        client = MagicMock()
        client.get_vm_prices.return_value = [
            _item("Standard_D2s_v3"),
            _item("Standard_D2s_v3", product="Virtual Machines DSv3 Series Windows", price=0.188),
        ]

        get_azure_ondemand_pricing("westeurope", config, client, emitted.append)

        assert [r.operating_system for r in emitted] == ["Windows"]
        assert emitted[0].value == 0.188

    def test_regex_filter(self, emitted):
        config = AzureScrapeConfig(regions=("westeurope",), instance_regexes=compile_regexes(["^Standard_D"]))
        client = MagicMock()
        client.get_vm_prices.return_value = [_item("Standard_D2s_v3"), _item("Standard_B1s")]

        get_azure_ondemand_pricing("westeurope", config, client, emitted.append)

        assert [r.instance_type for r in emitted] == ["Standard_D2s_v3"]

    def test_api_error_propagates(self, azure_config, emitted):
        """조회 실패는 작업 중단 (호출자에게 전파)"""
        client = MagicMock()
        client.get_vm_prices.side_effect = RetailPricesAPIError("westeurope", "실패", attempts=3)

        with pytest.raises(RetailPricesAPIError):
            get_azure_ondemand_pricing("westeurope", azure_config, client, emitted.append)

        assert emitted == []
