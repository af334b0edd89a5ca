"""
exporter - 클라우드 인스턴스 가격 수집 엔진

AWS(On-Demand, Spot, Savings Plans)와 Azure(On-Demand) VM 가격을 주기적으로 수집하여
Prometheus 게이지로 노출합니다.

구성:
    - orchestrator: (리전 x 수집기) 병렬 수집 사이클
    - cache: TTL 캐시 게이트 (동시 사이클 1개)
    - collector: prometheus_client 커스텀 Collector
    - aws / azure: 프로바이더별 수집기
    - parallel: 병렬 실행기, 에러 집계, 재시도 설정
"""

__version__ = "1.0.0"
