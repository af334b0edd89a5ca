"""
exporter/config.py - 중앙 설정 관리

프로세스 기본값(Settings)과 수집 설정(ScrapeConfig)을 정의합니다.

- Settings: 환경 변수로 덮어쓸 수 있는 불변 기본값 (타임아웃, 워커 수 등)
- ScrapeConfig: CLI에서 검증된 수집 대상 설정. 시작 시 한 번 생성되고
  수집 사이클 동안 모든 워커가 읽기 전용으로 공유합니다 (frozen dataclass).

Usage:
    from exporter.config import ScrapeConfig, AwsScrapeConfig, settings

    config = ScrapeConfig(
        aws=AwsScrapeConfig(regions=("us-east-1",), lifecycles=("spot",)),
        cache_seconds=300,
    )
    config.validate()
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from .exceptions import ConfigError

# =============================================================================
# 허용 값
# =============================================================================

VALID_PRODUCT_DESCRIPTIONS: tuple[str, ...] = (
    "Linux/UNIX",
    "Linux/UNIX (Amazon VPC)",
    "SUSE Linux",
    "SUSE Linux (Amazon VPC)",
    "Windows",
    "Windows (Amazon VPC)",
)

VALID_OPERATING_SYSTEMS: tuple[str, ...] = ("Linux", "RHEL", "SUSE", "Windows")

VALID_LIFECYCLES: tuple[str, ...] = ("spot", "ondemand")

VALID_SAVING_PLAN_TYPES: tuple[str, ...] = ("Compute", "EC2Instance", "SageMaker")

VALID_AZURE_OPERATING_SYSTEMS: tuple[str, ...] = ("Linux", "Windows")

MATCH_ALL = ".*"


# =============================================================================
# 환경 변수 헬퍼
# =============================================================================


def get_env_int(name: str, default: int) -> int:
    """환경 변수를 int로 읽기 (파싱 실패 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_env_float(name: str, default: float) -> float:
    """환경 변수를 float로 읽기 (파싱 실패 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """프로세스 전역 기본 설정 (불변)

    Attributes:
        HTTP_CONNECT_TIMEOUT: HTTP 연결 타임아웃 (초)
        HTTP_READ_TIMEOUT: HTTP 읽기 타임아웃 (초) - 개별 호출 단위로 적용
        CYCLE_TIMEOUT_SECONDS: 수집 사이클 전체 제한 시간 (초)
        MAX_WORKERS: 동시 수집 워커 수 상한
        RESULT_QUEUE_SIZE: 워커 → 수집기 결과 큐 크기
        AZURE_RETRY_BASE_DELAY: Azure 재시도 백오프 기본 단위 (초)
        AWS_API_RETRY_ATTEMPTS: botocore 표준 재시도 모드의 최대 시도 횟수
    """

    HTTP_CONNECT_TIMEOUT: float = get_env_float("CPE_HTTP_CONNECT_TIMEOUT", 10.0)
    HTTP_READ_TIMEOUT: float = get_env_float("CPE_HTTP_READ_TIMEOUT", 30.0)
    CYCLE_TIMEOUT_SECONDS: float = get_env_float("CPE_CYCLE_TIMEOUT_SECONDS", 300.0)
    MAX_WORKERS: int = get_env_int("CPE_MAX_WORKERS", 20)
    RESULT_QUEUE_SIZE: int = get_env_int("CPE_RESULT_QUEUE_SIZE", 1000)
    AZURE_RETRY_BASE_DELAY: float = get_env_float("CPE_AZURE_RETRY_BASE_DELAY", 1.0)
    AWS_API_RETRY_ATTEMPTS: int = get_env_int("CPE_AWS_API_RETRY_ATTEMPTS", 3)


settings = Settings()


# =============================================================================
# 파싱 헬퍼
# =============================================================================


def split_and_trim(value: str | None) -> tuple[str, ...]:
    """콤마 구분 문자열을 공백 제거된 튜플로 변환 (빈 항목 제외)"""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def compile_regexes(patterns: tuple[str, ...] | list[str], key: str = "instance_regexes") -> tuple[re.Pattern, ...]:
    """정규식 문자열 목록을 컴파일

    Args:
        patterns: 정규식 문자열 목록 (비어 있으면 전체 매칭 ".*")
        key: 에러 메시지용 설정 키

    Returns:
        컴파일된 정규식 튜플

    Raises:
        ConfigError: 잘못된 정규식
    """
    compiled = []
    for pattern in patterns or (MATCH_ALL,):
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(key, f"잘못된 정규식 '{pattern}'", cause=e) from e
    return tuple(compiled)


def is_match_any(patterns: tuple[re.Pattern, ...], text: str) -> bool:
    """text가 정규식 중 하나라도 매칭되는지 확인 (re.search, 부분 매칭)"""
    return any(pattern.search(text) for pattern in patterns)


def _validate_choices(key: str, values: tuple[str, ...], allowed: tuple[str, ...]) -> None:
    for value in values:
        if value not in allowed:
            raise ConfigError(key, f"'{value}' 값을 인식할 수 없습니다. 허용 값: {', '.join(allowed)}")


# =============================================================================
# 수집 설정
# =============================================================================


@dataclass(frozen=True)
class AwsScrapeConfig:
    """AWS EC2 가격 수집 설정

    Attributes:
        regions: 수집 대상 리전
        product_descriptions: Spot/Savings Plan 필터 (예: "Linux/UNIX")
        operating_systems: On-Demand 필터 (예: "Linux")
        lifecycles: "spot", "ondemand" 중 수집 대상
        instance_regexes: 인스턴스 타입 필터
        saving_plan_types: Savings Plan 종류 (비어 있으면 수집 안 함)
    """

    regions: tuple[str, ...] = ()
    product_descriptions: tuple[str, ...] = ("Linux/UNIX",)
    operating_systems: tuple[str, ...] = ("Linux",)
    lifecycles: tuple[str, ...] = VALID_LIFECYCLES
    instance_regexes: tuple[re.Pattern, ...] = field(default_factory=lambda: compile_regexes(()))
    saving_plan_types: tuple[str, ...] = ()

    @property
    def spot_enabled(self) -> bool:
        return "spot" in self.lifecycles

    @property
    def ondemand_enabled(self) -> bool:
        return "ondemand" in self.lifecycles

    @property
    def savingplan_enabled(self) -> bool:
        return len(self.saving_plan_types) > 0

    def validate(self) -> None:
        """허용 값 검증

        Raises:
            ConfigError: 허용되지 않은 값 포함
        """
        _validate_choices("product_descriptions", self.product_descriptions, VALID_PRODUCT_DESCRIPTIONS)
        _validate_choices("operating_systems", self.operating_systems, VALID_OPERATING_SYSTEMS)
        _validate_choices("lifecycle", self.lifecycles, VALID_LIFECYCLES)
        _validate_choices("saving_plan_types", self.saving_plan_types, VALID_SAVING_PLAN_TYPES)


@dataclass(frozen=True)
class AzureScrapeConfig:
    """Azure VM On-Demand 가격 수집 설정"""

    regions: tuple[str, ...] = ()
    operating_systems: tuple[str, ...] = ("Linux",)
    instance_regexes: tuple[re.Pattern, ...] = field(default_factory=lambda: compile_regexes(()))

    def validate(self) -> None:
        if not self.regions:
            raise ConfigError("azure_regions", "Azure 수집 시 최소 1개 리전이 필요합니다")
        _validate_choices("azure_operating_systems", self.operating_systems, VALID_AZURE_OPERATING_SYSTEMS)


@dataclass(frozen=True)
class ScrapeConfig:
    """수집 사이클 설정 (불변)

    aws/azure가 None이면 해당 프로바이더는 비활성화됩니다.

    Attributes:
        aws: AWS 수집 설정
        azure: Azure 수집 설정
        cache_seconds: 결과 캐시 TTL (0이면 매 요청마다 수집)
        cycle_timeout_seconds: 사이클 전체 제한 시간
        max_workers: 동시 워커 수
    """

    aws: AwsScrapeConfig | None = None
    azure: AzureScrapeConfig | None = None
    cache_seconds: int = 0
    cycle_timeout_seconds: float = settings.CYCLE_TIMEOUT_SECONDS
    max_workers: int = settings.MAX_WORKERS

    @property
    def aws_enabled(self) -> bool:
        return self.aws is not None

    @property
    def azure_enabled(self) -> bool:
        return self.azure is not None

    def validate(self) -> None:
        """전체 설정 검증

        Raises:
            ConfigError: 활성화된 프로바이더가 없거나 값이 잘못된 경우
        """
        if not self.aws_enabled and not self.azure_enabled:
            raise ConfigError("providers", "최소 1개 프로바이더(AWS 또는 Azure)가 활성화되어야 합니다")
        if self.cache_seconds < 0:
            raise ConfigError("cache", f"0 이상이어야 합니다 (입력값: {self.cache_seconds})")
        if self.cycle_timeout_seconds <= 0:
            raise ConfigError("cycle_timeout", f"0보다 커야 합니다 (입력값: {self.cycle_timeout_seconds})")
        if self.max_workers < 1:
            raise ConfigError("max_workers", f"1 이상이어야 합니다 (입력값: {self.max_workers})")
        if self.aws is not None:
            self.aws.validate()
        if self.azure is not None:
            self.azure.validate()
