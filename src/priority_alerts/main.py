"""
Priority Alerts - Composition Root
==================================

Priority Alert & Triage Engine.

Builds a ready-to-use AlertDispatchService from Settings, wrapped in an
AlertRuntime that owns the resources created for it:

STARTUP:
1. Setup structured logging
2. Load alert rules (YAML or built-in defaults)
3. Initialize the alert store (database or in-memory)
4. Initialize the LLM client and urgency classifier
5. Initialize the broadcaster

SHUTDOWN:
1. Close the broadcaster
2. Close the LLM client
3. Close database connections
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine

from priority_alerts.config import Settings, get_settings
from priority_alerts.alerts.application import (
    AlertDispatchService,
    IAlertStore,
    IBroadcaster,
)
from priority_alerts.alerts.infrastructure.external import HttpBroadcaster, LoggingBroadcaster
from priority_alerts.alerts.infrastructure.repositories import (
    InMemoryAlertStore,
    SQLAlchemyAlertStore,
)
from priority_alerts.core import ConfigurationException
from priority_alerts.infrastructure.database import (
    create_engine,
    create_session_maker,
    create_tables,
)
from priority_alerts.infrastructure.llm import ILLMClient, MockLLMClient, OpenAILLMClient
from priority_alerts.shared.infrastructure.logging import get_logger, setup_logging
from priority_alerts.triage.application import ClassifierBridge
from priority_alerts.triage.domain import UrgencyScorer
from priority_alerts.triage.infrastructure.cache import TTLCache
from priority_alerts.triage.infrastructure.external import (
    AlertRuleConfigLoader,
    LLMUrgencyClassifier,
)

logger = get_logger(__name__)


@dataclass
class AlertRuntime:
    """
    A wired dispatch service plus the resources it owns.

    Each runtime holds its own LLM client and database engine, so shutting
    one runtime down never touches another.
    """
    service: AlertDispatchService
    llm_client: Optional[ILLMClient] = None
    db_engine: Optional[AsyncEngine] = None


def _build_llm_client(settings: Settings) -> Optional[ILLMClient]:
    if settings.mock_llm:
        logger.info("Using mock LLM client")
        return MockLLMClient()

    try:
        return OpenAILLMClient(settings=settings)
    except ConfigurationException as e:
        logger.warning(f"LLM client not configured, classifier disabled: {e.message}")
        return None


async def _build_store(settings: Settings) -> Tuple[IAlertStore, Optional[AsyncEngine]]:
    if not settings.use_database:
        logger.info("Using in-memory alert store")
        return InMemoryAlertStore(), None

    logger.info("Initializing database")
    db_engine = create_engine(settings=settings)

    # Development convenience - production should use migrations
    await create_tables(db_engine)
    return SQLAlchemyAlertStore(create_session_maker(db_engine)), db_engine


def _build_broadcaster(settings: Settings) -> IBroadcaster:
    if not settings.broadcaster_url:
        logger.info("Broadcaster URL not configured, logging events only")
        return LoggingBroadcaster()

    return HttpBroadcaster(
        settings.broadcaster_url,
        timeout_seconds=settings.broadcaster_timeout_seconds,
        max_retries=settings.broadcaster_max_retries,
    )


async def create_dispatch_service(
    settings: Optional[Settings] = None,
    store: Optional[IAlertStore] = None,
    broadcaster: Optional[IBroadcaster] = None
) -> AlertRuntime:
    """
    Wire the engine from settings.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Pre-built store, skips database setup
        broadcaster: Pre-built broadcaster

    Returns:
        AlertRuntime whose ``service`` is ready to process items

    Raises:
        ConfigurationException: If the alert rule file is invalid
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting alert engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    rules = AlertRuleConfigLoader.load(settings.alert_rules_path)

    llm_client = _build_llm_client(settings)
    classifier = None
    if llm_client is not None:
        classifier = LLMUrgencyClassifier(
            llm_client,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens
        )

    bridge = ClassifierBridge(
        classifier,
        cache=TTLCache(
            ttl_seconds=settings.classifier_cache_ttl_seconds,
            maxsize=settings.classifier_cache_maxsize
        ),
        timeout_seconds=settings.classifier_timeout_seconds
    )

    db_engine = None
    if store is None:
        store, db_engine = await _build_store(settings)

    service = AlertDispatchService(
        rules=rules,
        scorer=UrgencyScorer(),
        classifier_bridge=bridge,
        store=store,
        broadcaster=broadcaster or _build_broadcaster(settings),
        batch_concurrency=settings.batch_concurrency
    )

    logger.info("Alert engine ready", extra={"rule_count": len(rules.rules)})
    return AlertRuntime(service=service, llm_client=llm_client, db_engine=db_engine)


async def shutdown_dispatch_service(runtime: AlertRuntime) -> None:
    """Release resources acquired by create_dispatch_service()."""
    await runtime.service.broadcaster.close()

    if runtime.llm_client is not None:
        await runtime.llm_client.close()
        runtime.llm_client = None

    if runtime.db_engine is not None:
        await runtime.db_engine.dispose()
        runtime.db_engine = None

    logger.info("Alert engine stopped")
