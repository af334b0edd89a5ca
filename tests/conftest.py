"""
tests/conftest.py - pytest 공통 픽스처

AWS/Azure API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(instances, errors, emitted):
        # instances: 테스트용 InstanceStore
        # errors: ErrorCollector
        # emitted: emit 함수로 전달된 레코드를 모으는 리스트
        pass
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from exporter.aws.instances import Instance, InstanceStore  # noqa: E402
from exporter.config import AwsScrapeConfig, AzureScrapeConfig, compile_regexes  # noqa: E402
from exporter.parallel.errors import ErrorCollector  # noqa: E402

# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


# =============================================================================
# 도메인 픽스처
# =============================================================================


@pytest.fixture
def instances():
    """테스트용 인스턴스 사양 저장소"""
    return InstanceStore.from_map(
        {
            "t3.medium": Instance(memory_mib=4096, vcpu=2),
            "m5.large": Instance(memory_mib=8192, vcpu=2),
            "c5.xlarge": Instance(memory_mib=8192, vcpu=4),
        }
    )


@pytest.fixture
def errors():
    """에러 수집기"""
    return ErrorCollector("test")


@pytest.fixture
def emitted():
    """emit 대상 리스트 (list.append를 emit 함수로 사용)"""
    return []


@pytest.fixture
def aws_config():
    """기본 AWS 수집 설정"""
    return AwsScrapeConfig(
        regions=("us-east-1",),
        product_descriptions=("Linux/UNIX",),
        operating_systems=("Linux",),
        lifecycles=("spot", "ondemand"),
        instance_regexes=compile_regexes(()),
        saving_plan_types=("Compute",),
    )


@pytest.fixture
def azure_config():
    """기본 Azure 수집 설정"""
    return AzureScrapeConfig(
        regions=("westeurope",),
        operating_systems=("Linux",),
        instance_regexes=compile_regexes(()),
    )


# =============================================================================
# AWS 모킹 픽스처
# =============================================================================


@pytest.fixture
def mock_ec2_client():
    """EC2 클라이언트 모킹"""
    mock_client = MagicMock()

    mock_client.describe_availability_zones.return_value = {
        "AvailabilityZones": [
            {"ZoneName": "us-east-1a"},
            {"ZoneName": "us-east-1b"},
        ]
    }

    # 페이지네이터 모킹
    mock_paginator = MagicMock()
    mock_paginator.paginate.return_value = []
    mock_client.get_paginator.return_value = mock_paginator

    yield mock_client


# =============================================================================
# HTTP 모킹 헬퍼
# =============================================================================


def create_http_response(
    status_code: int = 200,
    json_data: Any = None,
    json_error: Optional[Exception] = None,
) -> MagicMock:
    """requests.Response 모킹 헬퍼"""
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation,
    )


def create_mock_response(
    data: Dict[str, Any],
    next_token: Optional[str] = None,
) -> Dict[str, Any]:
    """nextToken 페이지네이션 응답 생성 헬퍼"""
    response = data.copy()
    if next_token is not None:
        response["nextToken"] = next_token
    return response


# =============================================================================
# moto 통합
# =============================================================================


@pytest.fixture
def aws_credentials():
    """moto 사용 시 AWS 자격 증명 설정"""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def moto_aws(aws_credentials):
    """moto를 사용한 AWS 모킹"""
    import moto

    with moto.mock_aws():
        yield
