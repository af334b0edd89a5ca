"""
exporter/types.py - 가격 레코드 및 메트릭 라벨 스키마

모든 스크래퍼가 생성하는 공통 레코드(PriceRecord)와
메트릭 종류별 라벨 스키마를 정의합니다.

메트릭 이름/라벨 집합은 다운스트림 대시보드와의 호환성 계약이므로
변경 시 METRICS_SCHEMA_VERSION을 올려야 합니다.

메트릭 스키마:
    aws_pricing_ec2          인스턴스 시간당 가격 (OS/사양 라벨 포함)
    aws_pricing_ec2_memory   메모리 GB당 정규화 가격
    aws_pricing_ec2_vcpu     vCPU당 정규화 가격
    azure_pricing_vm         Azure VM 시간당 가격
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

METRICS_SCHEMA_VERSION = 1


class Lifecycle(str, Enum):
    """가격 라이프사이클 (instance_lifecycle 라벨 값)"""

    SPOT = "spot"
    ONDEMAND = "ondemand"


class MetricKind(Enum):
    """가격 메트릭 종류

    값은 (namespace, name, help) 튜플이며, 라벨 스키마는 LABEL_SCHEMA에 정의됩니다.
    """

    EC2 = ("aws_pricing", "ec2", "Current price of the instance type.")
    EC2_MEMORY = ("aws_pricing", "ec2_memory", "Price of each GB of memory of the instance.")
    EC2_VCPU = ("aws_pricing", "ec2_vcpu", "Price of each VCPU of the instance.")
    AZURE_VM = ("azure_pricing", "vm", "Current price of the Azure VM instance type.")

    @property
    def metric_name(self) -> str:
        """Prometheus에 노출되는 전체 메트릭 이름 (namespace_name)"""
        namespace, name, _ = self.value
        return f"{namespace}_{name}"

    @property
    def documentation(self) -> str:
        return self.value[2]

    @property
    def labels(self) -> tuple[str, ...]:
        """이 메트릭 종류의 라벨 키 (순서 고정)"""
        return LABEL_SCHEMA[self]


_SAVING_PLAN_LABELS = ("saving_plan_option", "saving_plan_duration", "saving_plan_type")

LABEL_SCHEMA: dict[MetricKind, tuple[str, ...]] = {
    MetricKind.EC2: (
        "instance_lifecycle",
        "instance_type",
        "region",
        "availability_zone",
        "product_description",
        "operating_system",
        *_SAVING_PLAN_LABELS,
        "memory",
        "vcpu",
    ),
    MetricKind.EC2_MEMORY: (
        "instance_lifecycle",
        "instance_type",
        "region",
        "availability_zone",
        *_SAVING_PLAN_LABELS,
    ),
    MetricKind.EC2_VCPU: (
        "instance_lifecycle",
        "instance_type",
        "region",
        "availability_zone",
        *_SAVING_PLAN_LABELS,
    ),
    MetricKind.AZURE_VM: (
        "instance_lifecycle",
        "instance_type",
        "region",
        "operating_system",
    ),
}

AWS_PRICE_KINDS: tuple[MetricKind, ...] = (MetricKind.EC2, MetricKind.EC2_MEMORY, MetricKind.EC2_VCPU)

# 라벨 이름 -> PriceRecord 필드 이름 (동일하지 않은 것만)
_LABEL_TO_FIELD = {
    "instance_lifecycle": "lifecycle",
}

# 라벨로 노출되지 않는 필드
_NON_LABEL_FIELDS = {"kind", "value"}


@dataclass(frozen=True)
class PriceRecord:
    """스크래퍼가 생성하는 단일 가격 레코드

    메트릭 종류(kind)의 라벨 스키마에 속하지 않는 필드는 반드시 비어 있어야 하며,
    위반 시 생성 단계에서 ValueError가 발생합니다.
    (예: EC2_VCPU 레코드는 product_description을 가질 수 없음)

    Attributes:
        kind: 메트릭 종류
        value: 가격 (USD/시간)
        region: 리전 코드
        instance_type: 인스턴스 타입 (Azure는 armSkuName)
        lifecycle: spot 또는 ondemand
        availability_zone: 가용 영역 (Savings Plan은 빈 문자열)
        product_description: 제품 설명 (예: "Linux/UNIX")
        operating_system: 운영체제 (예: "Linux", "Windows")
        saving_plan_option: 결제 옵션 (예: "All Upfront")
        saving_plan_duration: 약정 기간(년), 0이면 해당 없음
        saving_plan_type: 플랜 종류 (예: "Compute")
        memory: 메모리 (MiB, 표시용 문자열)
        vcpu: vCPU 수 (표시용 문자열)
    """

    kind: MetricKind
    value: float
    region: str
    instance_type: str
    lifecycle: Lifecycle
    availability_zone: str = ""
    product_description: str = ""
    operating_system: str = ""
    saving_plan_option: str = ""
    saving_plan_duration: int = 0
    saving_plan_type: str = ""
    memory: str = ""
    vcpu: str = ""

    def __post_init__(self) -> None:
        allowed = {_LABEL_TO_FIELD.get(label, label) for label in LABEL_SCHEMA[self.kind]}
        for f in fields(self):
            if f.name in _NON_LABEL_FIELDS or f.name in allowed:
                continue
            if getattr(self, f.name) not in ("", 0):
                raise ValueError(f"{self.kind.metric_name} 레코드는 '{f.name}' 필드를 가질 수 없습니다")

    def labels(self) -> dict[str, str]:
        """라벨 스키마 순서대로 라벨 딕셔너리 반환"""
        return dict(zip(self.kind.labels, self.label_values()))

    def label_values(self) -> tuple[str, ...]:
        """라벨 스키마 순서대로 라벨 값 튜플 반환"""
        values = []
        for label in self.kind.labels:
            if label == "instance_lifecycle":
                values.append(self.lifecycle.value)
            elif label == "saving_plan_duration":
                values.append(str(self.saving_plan_duration) if self.saving_plan_duration else "")
            else:
                values.append(getattr(self, label))
        return tuple(values)

    def key(self) -> tuple[MetricKind, tuple[str, ...]]:
        """레코드 식별 키 (동일 라벨 조합은 마지막 값으로 대체)"""
        return self.kind, self.label_values()
