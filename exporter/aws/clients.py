"""
exporter/aws/clients.py - boto3 클라이언트 생성 팩토리

표준 재시도 모드 + 호출 단위 타임아웃이 설정된 리전별 boto3 클라이언트를 생성합니다.
수집 작업은 워커 스레드 안에서 자기 리전의 클라이언트를 직접 생성하며,
생성 실패는 ClientConstructionError로 변환되어 해당 작업만 중단시킵니다.

인증은 boto3 기본 자격 증명 체인을 그대로 사용합니다.

Usage:
    from exporter.aws.clients import AwsClientFactory

    factory = AwsClientFactory()
    ec2 = factory.ec2("ap-northeast-2")
    regions = factory.discover_regions()
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Literal

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from exporter.config import settings
from exporter.exceptions import ClientConstructionError

from .constants import SAVINGS_PLANS_API_REGION

logger = logging.getLogger(__name__)

RetryMode = Literal["legacy", "standard", "adaptive"]

DEFAULT_RETRY_MODE: RetryMode = "standard"
DEFAULT_MAX_POOL_CONNECTIONS = 25


class AwsClientFactory:
    """리전별 boto3 클라이언트 팩토리

    boto3.Session은 스레드 세이프하지 않으므로 클라이언트 생성은 락으로 직렬화합니다.
    생성된 클라이언트 자체는 스레드 간 공유하지 않습니다.

    Attributes:
        session: boto3 세션 (None이면 기본 자격 증명 체인으로 생성)
        config: 모든 클라이언트에 적용할 botocore Config
    """

    def __init__(
        self,
        session: boto3.Session | None = None,
        connect_timeout: float = settings.HTTP_CONNECT_TIMEOUT,
        read_timeout: float = settings.HTTP_READ_TIMEOUT,
        max_attempts: int = settings.AWS_API_RETRY_ATTEMPTS,
        retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    ):
        self._session = session
        self._lock = threading.Lock()
        self.config = Config(
            retries={"max_attempts": max_attempts, "mode": retry_mode},
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            max_pool_connections=DEFAULT_MAX_POOL_CONNECTIONS,
        )

    @property
    def session(self) -> boto3.Session:
        with self._lock:
            if self._session is None:
                self._session = boto3.Session()
            return self._session

    def client(self, service_name: str, region: str, provider: str = "aws") -> Any:
        """리전 단위 boto3 클라이언트 생성

        Args:
            service_name: AWS 서비스 이름 (ec2, savingsplans)
            region: 리전
            provider: 에러 보고용 수집기 이름

        Returns:
            boto3 client

        Raises:
            ClientConstructionError: 클라이언트 생성 실패 (리전/자격 증명 설정 오류 등)
        """
        session = self.session
        try:
            with self._lock:
                return session.client(service_name, region_name=region, config=self.config)
        except (BotoCoreError, ClientError, ValueError) as e:
            raise ClientConstructionError(provider, region, service_name, cause=e) from e

    def ec2(self, region: str, provider: str = "aws") -> Any:
        return self.client("ec2", region, provider)

    def savingsplans(self, provider: str = "aws_savingplan") -> Any:
        """Savings Plans 클라이언트 (글로벌 API라 항상 us-east-1 엔드포인트 사용)"""
        return self.client("savingsplans", SAVINGS_PLANS_API_REGION, provider)

    def discover_regions(self, bootstrap_region: str = "us-east-1") -> tuple[str, ...]:
        """계정에서 활성화된 리전 목록 조회

        Args:
            bootstrap_region: describe_regions 호출에 사용할 리전

        Returns:
            리전 이름 튜플 (정렬됨)

        Raises:
            ClientConstructionError: 클라이언트 생성 실패
            ClientError: describe_regions 호출 실패
        """
        ec2 = self.ec2(bootstrap_region, provider="aws_regions")
        response = ec2.describe_regions(AllRegions=False)
        regions = tuple(sorted(r["RegionName"] for r in response.get("Regions", [])))
        logger.info(f"리전 자동 탐색: {len(regions)}개 리전")
        return regions
