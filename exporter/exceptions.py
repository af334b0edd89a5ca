"""
exporter/exceptions.py - 통합 예외 계층 구조

가격 수집 엔진 전체에서 사용되는 예외 클래스들을 정의합니다.
수집 사이클 내부의 예외는 워커 단위로 격리되어 ErrorCollector에 집계되며,
ConfigError만 CLI 계층까지 전파됩니다.

예외 계층 구조:
    PriceExporterError (베이스)
    ├── ConfigError              (치명적 설정 오류 - 시작 단계에서 종료)
    ├── ClientConstructionError  (리전 클라이언트 생성 실패 - 해당 작업만 중단)
    ├── UpstreamError            (네트워크/HTTP 실패 - 해당 작업만 중단)
    │   └── RetailPricesAPIError (Azure Retail Prices API 재시도 소진 등)
    ├── RecordParseError         (응답 레코드 형식 오류 - 해당 레코드만 스킵)
    ├── PolicyViolationError     (지원하지 않는 약정 기간 등 - 해당 레코드만 스킵)
    └── InstanceCatalogError     (인스턴스 카탈로그 로드 실패)

Usage:
    from exporter.exceptions import UpstreamError

    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError("aws_ondemand", region, "bulk pricing 조회 실패", cause=e)
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# 베이스 예외
# =============================================================================


class PriceExporterError(Exception):
    """가격 수집기 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(PriceExporterError):
    """설정 관련 예외 (치명적)

    수집 사이클 내부에서 재시도하지 않고 시작 계층으로 전파됩니다.
    """

    def __init__(
        self,
        key: str,
        message: str,
        cause: Exception | None = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 수집 작업 관련 예외
# =============================================================================


class ScrapeError(PriceExporterError):
    """개별 수집 작업(provider/region) 관련 예외"""

    def __init__(
        self,
        provider: str,
        region: str,
        message: str,
        cause: Exception | None = None,
    ):
        full_message = f"[{provider}/{region}] {message}"
        super().__init__(full_message, cause)
        self.provider = provider
        self.region = region
        self.details.update({"provider": provider, "region": region})


class ClientConstructionError(ScrapeError):
    """리전 단위 클라이언트 생성 실패"""

    def __init__(
        self,
        provider: str,
        region: str,
        service: str,
        cause: Exception | None = None,
    ):
        super().__init__(provider, region, f"{service} 클라이언트 생성 실패", cause)
        self.service = service
        self.details["service"] = service


class UpstreamError(ScrapeError):
    """업스트림 API 호출 실패 (네트워크, HTTP 상태, 재시도 소진)"""

    def __init__(
        self,
        provider: str,
        region: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(provider, region, message, cause)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code


class RetailPricesAPIError(UpstreamError):
    """Azure Retail Prices API 호출 실패"""

    def __init__(
        self,
        region: str,
        message: str,
        status_code: int | None = None,
        attempts: int = 0,
        cause: Exception | None = None,
    ):
        super().__init__("azure_ondemand", region, message, status_code=status_code, cause=cause)
        self.attempts = attempts
        self.details["attempts"] = attempts


class RecordParseError(PriceExporterError):
    """업스트림 응답 레코드 파싱 실패 (해당 레코드만 스킵)"""

    def __init__(
        self,
        field: str,
        value: Any,
        cause: Exception | None = None,
    ):
        message = f"레코드 파싱 오류 [{field}]: {value!r}"
        super().__init__(message, cause)
        self.field = field
        self.value = value
        self.details.update({"field": field, "value": str(value)})


class PolicyViolationError(PriceExporterError):
    """수집 정책 위반 (예: 1년/3년 외의 Savings Plan 기간)"""

    def __init__(
        self,
        field: str,
        value: Any,
        expected: str,
    ):
        message = f"정책 위반 [{field}]: 예상값 '{expected}', 실제값 '{value}'"
        super().__init__(message)
        self.field = field
        self.value = value
        self.expected = expected
        self.details.update(
            {
                "field": field,
                "value": str(value),
                "expected": expected,
            }
        )


class InstanceCatalogError(PriceExporterError):
    """인스턴스 카탈로그(vCPU/메모리 사양) 로드 실패"""

    def __init__(
        self,
        source: str,
        message: str,
        cause: Exception | None = None,
    ):
        super().__init__(f"인스턴스 카탈로그 로드 실패 [{source}]: {message}", cause)
        self.source = source
        self.details["source"] = source


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인

    botocore ClientError 코드와 HTTP 429 상태를 모두 확인합니다.

    Args:
        error: 확인할 예외

    Returns:
        스로틀링 오류이면 True
    """
    throttling_codes = {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RateExceeded",
    }

    if isinstance(error, UpstreamError):
        return error.status_code == 429

    if hasattr(error, "response") and isinstance(error.response, dict):
        error_code = error.response.get("Error", {}).get("Code", "")
        return error_code in throttling_codes

    return False


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    if isinstance(error, UpstreamError):
        return error.status_code in (401, 403)

    if hasattr(error, "response") and isinstance(error.response, dict):
        error_code = error.response.get("Error", {}).get("Code", "")
        return error_code in (
            "AccessDenied",
            "AccessDeniedException",
            "UnauthorizedOperation",
            "UnauthorizedAccess",
        )

    return False
