"""Dependency injection container for Object Copy."""

from dataclasses import dataclass

import structlog
from opentelemetry import trace

from object_copy.adapters.outbound.swift_object_store import SwiftObjectStore
from object_copy.application.copy_orchestrator import CopyOrchestrator
from object_copy.infrastructure.config import Config, get_config
from object_copy.infrastructure.logging import setup_logging
from object_copy.infrastructure.metrics import CopyMetrics, get_metrics
from object_copy.infrastructure.tracing import setup_tracing
from object_copy.ports.outbound import ObjectStoreClientPort, Session


@dataclass
class Container:
    """Dependency injection container for object copy components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: CopyMetrics

    _instance: "Container | None" = None

    @classmethod
    def create(cls) -> "Container":
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging()
        tracer = setup_tracing()
        metrics = get_metrics()
        if config.observability.metrics_enabled:
            metrics.start_server(config.observability.metrics_port)

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.info(
            "object_copy_container_initialized",
            environment=config.observability.environment,
            chunk_size=config.transfer.chunk_size,
            concurrency=config.transfer.concurrency,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def create_client(self) -> SwiftObjectStore:
        """Build an HTTP object store client from configuration."""
        return SwiftObjectStore(self.config.identity, self.config.http)

    def create_orchestrator(self, client: ObjectStoreClientPort, session: Session) -> CopyOrchestrator:
        """Build an orchestrator wired to this container's observability."""
        return CopyOrchestrator(
            client,
            session,
            config=self.config.transfer,
            metrics=self.metrics,
            tracer=self.tracer,
        )


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
