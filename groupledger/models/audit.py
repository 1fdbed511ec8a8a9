"""
Audit Models for Group Ledger

Every write to the record store is logged for audit purposes.
This provides:
1. A history of who was added, what was spent, and what was settled
2. Debugging information when a balance looks wrong
3. Ability to reconstruct how the ledger got to its current state

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # People
    PERSON_ADDED = "person_added"
    PERSON_REMOVED = "person_removed"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_REMOVED = "expense_removed"

    # Groups
    GROUP_ADDED = "group_added"
    GROUP_UPDATED = "group_updated"
    GROUP_REMOVED = "group_removed"

    # Settlements
    SETTLEMENT_ADDED = "settlement_added"
    SETTLEMENT_REMOVED = "settlement_removed"

    # Reference data
    CATEGORY_ADDED = "category_added"
    CATEGORY_REMOVED = "category_removed"
    CURRENCY_ADDED = "currency_added"

    # Validation
    RECORD_REJECTED = "record_rejected"

    # Ledger
    LEDGER_COMPUTED = "ledger_computed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of record (e.g., 'expense', 'person', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Id of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a removal and its cascade)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added("expense", expense.id, "Dinner")
        event = AuditEventBuilder.ledger_computed(version, "INR", 3)
    """

    _ADDED = {
        "person": AuditEventType.PERSON_ADDED,
        "expense": AuditEventType.EXPENSE_ADDED,
        "group": AuditEventType.GROUP_ADDED,
        "settlement": AuditEventType.SETTLEMENT_ADDED,
        "category": AuditEventType.CATEGORY_ADDED,
        "currency": AuditEventType.CURRENCY_ADDED,
    }
    _UPDATED = {
        "expense": AuditEventType.EXPENSE_UPDATED,
        "group": AuditEventType.GROUP_UPDATED,
    }
    _REMOVED = {
        "person": AuditEventType.PERSON_REMOVED,
        "expense": AuditEventType.EXPENSE_REMOVED,
        "group": AuditEventType.GROUP_REMOVED,
        "settlement": AuditEventType.SETTLEMENT_REMOVED,
        "category": AuditEventType.CATEGORY_REMOVED,
    }

    @staticmethod
    def record_added(
        entity_type: str,
        entity_id: str,
        label: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._ADDED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} added: {label}",
            details=details or {},
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: str,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._UPDATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} updated: {label}",
        )

    @staticmethod
    def record_removed(
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._REMOVED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} removed: {entity_id}",
            details=details or {},
        )

    @staticmethod
    def record_rejected(
        entity_type: str,
        entity_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def ledger_computed(
        version: int,
        currency: str,
        bucket_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger recomputed in {currency} at version {version}",
            details={
                "version": version,
                "currency": currency,
                "bucket_count": bucket_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
