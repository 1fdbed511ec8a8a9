"""
Data Models Package

This package contains all Pydantic models used in Group Ledger.
All records flowing through the system must conform to these schemas.
"""

from groupledger.models.records import (
    ALL_BUCKET,
    NO_GROUP_BUCKET,
    OTHER_CATEGORY_ID,
    Category,
    CategoryTotal,
    Currency,
    Expense,
    Group,
    Person,
    PersonBalance,
    Settlement,
    SplitShare,
    default_categories,
    default_currencies,
    generate_id,
)
from groupledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from groupledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Bucket keys
    "ALL_BUCKET",
    "NO_GROUP_BUCKET",
    "OTHER_CATEGORY_ID",
    # Record models
    "Category",
    "CategoryTotal",
    "Currency",
    "Expense",
    "Group",
    "Person",
    "PersonBalance",
    "Settlement",
    "SplitShare",
    "default_categories",
    "default_currencies",
    "generate_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
