"""
exporter/aws - AWS EC2 가격 수집기

- ondemand: 공개 벌크 가격 JSON 기반 On-Demand 가격
- spot: describe_spot_price_history 기반 Spot 가격
- savingsplan: describe_savings_plans_offering_rates 기반 Savings Plan 가격
- instances: 인스턴스 사양 저장소 및 비용 정규화
- clients: 리전별 boto3 클라이언트 팩토리
"""

from .clients import AwsClientFactory
from .instances import Instance, InstanceStore
from .ondemand import get_ondemand_pricing
from .savingsplan import get_savingplan_pricing, seconds_to_years
from .spot import get_spot_pricing

__all__: list[str] = [
    "AwsClientFactory",
    "Instance",
    "InstanceStore",
    "get_ondemand_pricing",
    "get_savingplan_pricing",
    "get_spot_pricing",
    "seconds_to_years",
]
