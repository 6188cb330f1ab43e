"""Dependency injection with a singleton service manager.

This module wires the shared in-memory store, the geo resolver and the
correlation engine once per process, and gives every request a lightweight
context carrying its id, client details and a context-aware logger.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from linktrace.config import Settings, get_settings
from linktrace.correlation import CorrelationEngine, GeoLookup
from linktrace.geo import GeoResolver
from linktrace.ip_utils import get_client_ip
from linktrace.store import LinkStore


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    The link store is process-wide state, so the store, the resolver and the
    engine that mutates the store are created exactly once and shared by all
    requests.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(
        self,
        settings: Optional[Settings] = None,
        store: Optional[LinkStore] = None,
        geo_resolver: Optional[GeoLookup] = None,
    ) -> None:
        """Initialize shared resources once at startup.

        ``store`` and ``geo_resolver`` may be supplied to replace the defaults;
        a supplied resolver is not closed by ``cleanup()``.
        """
        if not self._initialized:
            self.settings = settings or get_settings()
            self.logger = self._setup_logger()
            self.store = store or LinkStore(
                id_length=self.settings.LINK_ID_LENGTH,
                max_attempts=self.settings.LINK_ID_MAX_ATTEMPTS,
            )
            self._owns_resolver = geo_resolver is None
            self.geo_resolver = geo_resolver or self._setup_geo_resolver()
            self.engine = CorrelationEngine(
                self.store,
                self.geo_resolver,
                geo_timeout=self.settings.GEO_LOOKUP_TIMEOUT_SECONDS,
                geo_enabled=self.settings.GEO_LOOKUP_ENABLED,
            )
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("linktrace")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_geo_resolver(self) -> GeoResolver:
        """Setup the HTTP geo resolver once."""
        return GeoResolver(
            self.settings.GEO_LOOKUP_URL,
            timeout=self.settings.GEO_LOOKUP_TIMEOUT_SECONDS,
        )

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "engine"):
            await self.engine.close()
        if getattr(self, "_owns_resolver", False) and isinstance(self.geo_resolver, GeoResolver):
            await self.geo_resolver.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with tracking and shared resource access.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address, resolved from proxy headers
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def store(self) -> LinkStore:
        return self.service_manager.store

    @property
    def engine(self) -> CorrelationEngine:
        return self.service_manager.engine

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        """Add a tag to the request context."""
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    """Get the singleton service manager.

    Returns:
        ServiceManager: Initialized singleton service manager
    """
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=get_client_ip(request),
    )

