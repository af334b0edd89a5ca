"""
exporter/aws/constants.py - AWS 가격 수집 상수

상수:
    - ``BULK_PRICING_URL_FORMAT``: 리전별 EC2 공개 벌크 가격 JSON URL
    - ``EC2_INSTANCES_INFO_URL``: 인스턴스 사양 카탈로그 URL
    - ``TERM_ON_DEMAND`` / ``TERM_PER_HOUR``: 벌크 가격 JSON의 On-Demand 시간당 요금 코드
    - ``CPU_MEM_RELATION``: vCPU 1개 비용 = 메모리 1GB 비용 x 7.2
"""

from __future__ import annotations

BULK_PRICING_URL_FORMAT = "https://pricing.us-east-1.amazonaws.com/offers/v1.0/aws/AmazonEC2/current/{region}/index.json"

EC2_INSTANCES_INFO_URL = "https://ec2instances.info/instances.json"

TERM_ON_DEMAND = "JRTCKXETXF"
TERM_PER_HOUR = "6YS6EN2CT7"

# https://engineering.empathy.co/cloud-finops-part-4-kubernetes-cost-report/
CPU_MEM_RELATION = 7.2

MAX_RESULTS_PER_PAGE = 100

# Savings Plans API는 글로벌 엔드포인트(us-east-1)만 제공
SAVINGS_PLANS_API_REGION = "us-east-1"

SECONDS_PER_YEAR = 31_536_000
