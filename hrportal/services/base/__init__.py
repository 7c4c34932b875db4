from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.cache_service import (
    CacheBackend,
    CacheService,
    InMemoryCacheBackend,
    RedisCacheBackend,
    build_cache_service,
)
from hrportal.services.base.notification_dispatcher import (
    NotificationChannel,
    NotificationDispatcher,
    NotificationMessage,
)
from hrportal.services.base.service_result import ErrorCode, ErrorSeverity, ServiceError, ServiceResult
from hrportal.services.base.transaction_manager import TransactionContext, TransactionManager

__all__ = [
    "AuditService",
    "BaseService",
    "CacheBackend",
    "CacheService",
    "ErrorCode",
    "ErrorSeverity",
    "InMemoryCacheBackend",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationMessage",
    "RedisCacheBackend",
    "ServiceError",
    "ServiceResult",
    "TransactionContext",
    "TransactionManager",
    "build_cache_service",
]
