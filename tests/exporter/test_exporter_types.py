"""
tests/exporter/test_exporter_types.py - PriceRecord/라벨 스키마 테스트
"""

import pytest

from exporter.types import AWS_PRICE_KINDS, LABEL_SCHEMA, Lifecycle, MetricKind, PriceRecord


class TestMetricKind:
    """MetricKind 테스트"""

    def test_metric_names(self):
        """노출 메트릭 이름"""
        assert MetricKind.EC2.metric_name == "aws_pricing_ec2"
        assert MetricKind.EC2_MEMORY.metric_name == "aws_pricing_ec2_memory"
        assert MetricKind.EC2_VCPU.metric_name == "aws_pricing_ec2_vcpu"
        assert MetricKind.AZURE_VM.metric_name == "azure_pricing_vm"

    def test_ec2_label_order(self):
        """aws_pricing_ec2 라벨 순서 고정"""
        assert MetricKind.EC2.labels == (
            "instance_lifecycle",
            "instance_type",
            "region",
            "availability_zone",
            "product_description",
            "operating_system",
            "saving_plan_option",
            "saving_plan_duration",
            "saving_plan_type",
            "memory",
            "vcpu",
        )

    def test_normalized_kinds_have_no_os_labels(self):
        """정규화 메트릭에는 OS/제품/사양 라벨이 없음"""
        for kind in (MetricKind.EC2_MEMORY, MetricKind.EC2_VCPU):
            assert "operating_system" not in kind.labels
            assert "product_description" not in kind.labels
            assert "memory" not in kind.labels

    def test_azure_labels(self):
        """azure_pricing_vm 라벨"""
        assert MetricKind.AZURE_VM.labels == ("instance_lifecycle", "instance_type", "region", "operating_system")

    def test_every_kind_has_schema(self):
        """모든 종류에 라벨 스키마 정의"""
        assert set(LABEL_SCHEMA) == set(MetricKind)
        assert MetricKind.AZURE_VM not in AWS_PRICE_KINDS


class TestPriceRecord:
    """PriceRecord 테스트"""

    def test_label_values_in_schema_order(self):
        """라벨 값이 스키마 순서로 반환됨"""
        record = PriceRecord(
            kind=MetricKind.EC2,
            value=0.0416,
            region="us-east-1",
            instance_type="t3.medium",
            lifecycle=Lifecycle.ONDEMAND,
            availability_zone="us-east-1a",
            product_description="Linux/UNIX",
            operating_system="Linux",
            memory="4096",
            vcpu="2",
        )

        assert record.label_values() == (
            "ondemand",
            "t3.medium",
            "us-east-1",
            "us-east-1a",
            "Linux/UNIX",
            "Linux",
            "",
            "",
            "",
            "4096",
            "2",
        )
        assert record.labels()["instance_lifecycle"] == "ondemand"

    def test_saving_plan_duration_label(self):
        """약정 기간은 년 단위 문자열, 0이면 빈 문자열"""
        record = PriceRecord(
            kind=MetricKind.EC2_VCPU,
            value=0.01,
            region="us-east-1",
            instance_type="m5.large",
            lifecycle=Lifecycle.ONDEMAND,
            saving_plan_option="All Upfront",
            saving_plan_duration=3,
            saving_plan_type="Compute",
        )

        assert record.labels()["saving_plan_duration"] == "3"
        assert record.labels()["availability_zone"] == ""

    def test_out_of_schema_field_rejected(self):
        """스키마 밖 필드가 채워지면 ValueError"""
        with pytest.raises(ValueError, match="product_description"):
            PriceRecord(
                kind=MetricKind.EC2_MEMORY,
                value=0.01,
                region="us-east-1",
                instance_type="m5.large",
                lifecycle=Lifecycle.SPOT,
                product_description="Linux/UNIX",
            )

    def test_azure_record_rejects_availability_zone(self):
        """Azure 레코드는 가용 영역을 가질 수 없음"""
        with pytest.raises(ValueError):
            PriceRecord(
                kind=MetricKind.AZURE_VM,
                value=0.1,
                region="westeurope",
                instance_type="Standard_D2s_v3",
                lifecycle=Lifecycle.ONDEMAND,
                availability_zone="1",
            )

    def test_key_identifies_label_set(self):
        """동일 라벨 조합은 같은 키"""
        a = PriceRecord(MetricKind.AZURE_VM, 0.1, "westeurope", "Standard_D2s_v3", Lifecycle.ONDEMAND, operating_system="Linux")
        b = PriceRecord(MetricKind.AZURE_VM, 0.2, "westeurope", "Standard_D2s_v3", Lifecycle.ONDEMAND, operating_system="Linux")
        c = PriceRecord(MetricKind.AZURE_VM, 0.2, "westeurope", "Standard_D2s_v3", Lifecycle.ONDEMAND, operating_system="Windows")

        assert a.key() == b.key()
        assert a.key() != c.key()
