"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반 exporter 실행 명령입니다.
플래그를 검증해 ScrapeConfig를 만들고, 인스턴스 카탈로그를 로드한 뒤
메트릭 HTTP 엔드포인트를 실행합니다.

모든 플래그는 CPE_ 접두사 환경 변수로도 설정할 수 있습니다.
(예: --azure-regions → CPE_AZURE_REGIONS)

종료 코드:
    0: 정상 종료 (SIGTERM/SIGINT)
    1: 시작 실패 (리전 탐색, 인스턴스 카탈로그 로드 실패)
    2: 설정 오류

Usage:
    $ cloud-price-exporter --regions us-east-1,eu-west-1 --cache 300
    $ cloud-price-exporter --no-aws-enabled --azure-regions westeurope
    $ python main.py --lifecycle spot --saving-plan-types Compute
"""

import logging
import sys

import click
from botocore.exceptions import BotoCoreError, ClientError
from prometheus_client import CollectorRegistry

from cli.server import create_app, parse_listen_address, serve
from cli.ui import print_error, setup_logging
from exporter.aws.clients import AwsClientFactory
from exporter.aws.constants import EC2_INSTANCES_INFO_URL
from exporter.aws.instances import InstanceStore
from exporter.cache import CacheGate
from exporter.collector import PricingCollector
from exporter.config import (
    AwsScrapeConfig,
    AzureScrapeConfig,
    ScrapeConfig,
    compile_regexes,
    settings,
    split_and_trim,
)
from exporter.exceptions import ConfigError, InstanceCatalogError, PriceExporterError
from exporter.orchestrator import ScrapeOrchestrator

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {"auto_envvar_prefix": "CPE", "help_option_names": ["-h", "--help"]}


def build_scrape_config(
    *,
    product_descriptions: str,
    operating_systems: str,
    cache: int,
    instance_regexes: str,
    aws_enabled: bool,
    regions: str,
    lifecycle: str,
    saving_plan_types: str,
    azure_enabled: bool,
    azure_regions: str,
    azure_operating_systems: str,
    azure_instance_regexes: str,
    cycle_timeout: float = settings.CYCLE_TIMEOUT_SECONDS,
    discover_regions=None,
) -> ScrapeConfig:
    """플래그 값으로 ScrapeConfig 생성 및 검증

    Args:
        discover_regions: AWS 리전이 비어 있을 때 호출할 탐색 함수

    Returns:
        검증된 ScrapeConfig

    Raises:
        ConfigError: 설정 오류
    """
    aws = None
    if aws_enabled:
        aws_regions = split_and_trim(regions)
        if not aws_regions:
            if discover_regions is None:
                raise ConfigError("regions", "AWS 리전이 지정되지 않았습니다")
            aws_regions = discover_regions()

        aws = AwsScrapeConfig(
            regions=aws_regions,
            product_descriptions=split_and_trim(product_descriptions),
            operating_systems=split_and_trim(operating_systems),
            lifecycles=split_and_trim(lifecycle) or ("spot", "ondemand"),
            instance_regexes=compile_regexes(split_and_trim(instance_regexes)),
            saving_plan_types=split_and_trim(saving_plan_types),
        )

    azure = None
    if azure_enabled:
        azure_region_list = split_and_trim(azure_regions)
        if not azure_region_list:
            logger.warning("Azure가 활성화되었지만 --azure-regions가 없어 Azure 수집을 건너뜁니다")
        else:
            azure = AzureScrapeConfig(
                regions=azure_region_list,
                operating_systems=split_and_trim(azure_operating_systems) or ("Linux",),
                instance_regexes=compile_regexes(split_and_trim(azure_instance_regexes), key="azure_instance_regexes"),
            )

    config = ScrapeConfig(aws=aws, azure=azure, cache_seconds=cache, cycle_timeout_seconds=cycle_timeout)
    config.validate()
    return config


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--listen-address", default=":8080", show_default=True, help="HTTP 요청을 받을 주소")
@click.option("--metrics-path", default="/metrics", show_default=True, help="메트릭 엔드포인트 경로")
@click.option("--log-level", default="info", show_default=True, help="로그 레벨 (debug, info, warning, error)")
@click.option(
    "--product-descriptions",
    default="Linux/UNIX",
    show_default=True,
    help="Spot/Savings Plan 제품 설명 (콤마 구분). Linux/UNIX, SUSE Linux, Windows 및 각 (Amazon VPC)",
)
@click.option(
    "--operating-systems",
    default="Linux",
    show_default=True,
    help="On-Demand 운영체제 (콤마 구분). Linux, RHEL, SUSE, Windows",
)
@click.option("--cache", default=0, show_default=True, type=int, help="결과 캐시 시간 (초)")
@click.option("--instance-regexes", default="", help="AWS 인스턴스 타입 정규식 (콤마 구분, 기본: 전체)")
@click.option("--aws-enabled/--no-aws-enabled", default=True, show_default=True, help="AWS EC2 가격 수집")
@click.option("--regions", default="", help="AWS 리전 (콤마 구분, 기본: 계정의 활성 리전 전체)")
@click.option("--lifecycle", default="", help="spot, ondemand (콤마 구분, 기본: 전체)")
@click.option("--saving-plan-types", default="", help="Compute, EC2Instance, SageMaker (콤마 구분, 기본: 없음)")
@click.option("--azure-enabled/--no-azure-enabled", default=True, show_default=True, help="Azure VM 가격 수집")
@click.option("--azure-regions", default="", help="Azure 리전 (콤마 구분, Azure 수집 시 필수)")
@click.option("--azure-operating-systems", default="Linux", show_default=True, help="Linux, Windows (콤마 구분)")
@click.option("--azure-instance-regexes", default="", help="Azure 인스턴스 타입 정규식 (콤마 구분, 기본: 전체)")
@click.option(
    "--cycle-timeout",
    default=settings.CYCLE_TIMEOUT_SECONDS,
    show_default=True,
    type=float,
    help="수집 사이클 전체 제한 시간 (초)",
)
@click.option("--instance-catalog-url", default=EC2_INSTANCES_INFO_URL, show_default=True, help="인스턴스 사양 카탈로그 URL")
@click.option(
    "--instance-catalog-cache",
    default=None,
    type=click.Path(dir_okay=False),
    help="인스턴스 카탈로그 디스크 캐시 파일 (조회 실패 시 사용)",
)
def cli(
    listen_address: str,
    metrics_path: str,
    log_level: str,
    product_descriptions: str,
    operating_systems: str,
    cache: int,
    instance_regexes: str,
    aws_enabled: bool,
    regions: str,
    lifecycle: str,
    saving_plan_types: str,
    azure_enabled: bool,
    azure_regions: str,
    azure_operating_systems: str,
    azure_instance_regexes: str,
    cycle_timeout: float,
    instance_catalog_url: str,
    instance_catalog_cache: str | None,
) -> None:
    """클라우드 인스턴스 가격 Prometheus exporter"""
    setup_logging(log_level)

    logger.info(
        f"Cloud Price Exporter 시작 [log-level={log_level}, aws-enabled={aws_enabled}, regions={regions}, "
        f"azure-enabled={azure_enabled}, azure-regions={azure_regions}, cache={cache}]"
    )

    try:
        parse_listen_address(listen_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--listen-address") from e

    aws_clients = AwsClientFactory()

    try:
        config = build_scrape_config(
            product_descriptions=product_descriptions,
            operating_systems=operating_systems,
            cache=cache,
            instance_regexes=instance_regexes,
            aws_enabled=aws_enabled,
            regions=regions,
            lifecycle=lifecycle,
            saving_plan_types=saving_plan_types,
            azure_enabled=azure_enabled,
            azure_regions=azure_regions,
            azure_operating_systems=azure_operating_systems,
            azure_instance_regexes=azure_instance_regexes,
            cycle_timeout=cycle_timeout,
            discover_regions=aws_clients.discover_regions,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e
    except (PriceExporterError, ClientError, BotoCoreError) as e:
        print_error(f"AWS 리전 목록 조회 실패: {e}")
        sys.exit(1)

    instances = InstanceStore()
    if config.aws_enabled:
        try:
            instances.load(url=instance_catalog_url, cache_path=instance_catalog_cache)
        except InstanceCatalogError as e:
            logger.debug(f"카탈로그 로드 실패 상세: {e.to_dict()}")
            print_error(str(e))
            sys.exit(1)

    orchestrator = ScrapeOrchestrator(config, instances, aws_clients=aws_clients)
    gate = CacheGate(orchestrator.run_cycle, ttl_seconds=config.cache_seconds)

    registry = CollectorRegistry()
    registry.register(PricingCollector(gate, azure_enabled=config.azure_enabled))

    logger.info(f"메트릭 엔드포인트 [address={listen_address}, path={metrics_path}]")
    serve(create_app(registry, metrics_path), listen_address)


if __name__ == "__main__":
    cli()
