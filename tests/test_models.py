"""
Tests for Group Ledger models

Test strategy:
1. Unit tests for individual components (models, settings)
2. Integration tests for flows (in-memory store, no external services)
3. Engine tests on hand-built records only
"""

import pytest
from datetime import date
from pydantic import ValidationError
from uuid import uuid4

from groupledger.config import LedgerSettings, LoggingSettings
from groupledger.models import (
    NO_GROUP_BUCKET,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Expense,
    Group,
    Person,
    PersonBalance,
    Settlement,
    SplitShare,
    ValidationIssue,
    ValidationResult,
    default_categories,
)

from factories import make_expense


class TestRecordModels:
    """Tests for the stored record models."""

    def test_person_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        person = Person(name="  Asha  ")
        assert person.name == "Asha"
        assert person.id

    def test_generated_ids_are_unique(self):
        assert Person(name="A").id != Person(name="A").id

    def test_records_are_frozen(self):
        """Test that stored records cannot be mutated in place."""
        person = Person(id="p1", name="Asha")
        with pytest.raises(ValidationError):
            person.name = "Someone else"

    def test_expense_from_camel_case(self):
        """Test that records load from the JSON API field names."""
        expense = Expense.model_validate({
            "id": "e1",
            "description": "Dinner",
            "amount": 90,
            "currency": "usd",
            "paidBy": "p1",
            "date": "2024-06-01",
            "categoryId": "food",
            "groupId": "trip",
            "splitAmong": [
                {"personId": "p1", "amount": 45},
                {"personId": "p2", "amount": 45},
            ],
        })
        assert expense.paid_by == "p1"
        assert expense.currency == "USD"
        assert expense.date == date(2024, 6, 1)
        assert expense.split_among[1] == SplitShare(person_id="p2", amount=45)
        assert expense.split_total == 90

    def test_expense_dumps_camel_case(self):
        expense = make_expense("p1", {"p2": 10.0})
        dumped = expense.model_dump(by_alias=True)
        assert dumped["paidBy"] == "p1"
        assert dumped["splitAmong"][0]["personId"] == "p2"

    def test_expense_rejects_empty_split(self):
        with pytest.raises(ValidationError):
            make_expense("p1", {}, amount=10.0)

    def test_expense_rejects_non_positive_amount(self):
        with pytest.raises(ValidationError):
            make_expense("p1", {"p2": 10.0}, amount=0)
        with pytest.raises(ValidationError):
            make_expense("p1", {"p2": 10.0}, amount=-5.0)

    def test_share_rejects_negative_amount(self):
        with pytest.raises(ValidationError):
            SplitShare(person_id="p1", amount=-1)

    def test_expense_bucket(self):
        assert make_expense("p1", {"p2": 1.0}).bucket == NO_GROUP_BUCKET
        assert make_expense("p1", {"p2": 1.0}, group_id="trip").bucket == "trip"

    def test_expense_involves(self):
        expense = make_expense("p1", {"p2": 1.0})
        assert expense.involves("p1")
        assert expense.involves("p2")
        assert not expense.involves("p3")

    def test_settlement_defaults(self):
        settlement = Settlement(from_person_id="p2", to_person_id="p1", amount=5, currency="eur")
        assert settlement.currency == "EUR"
        assert settlement.bucket == NO_GROUP_BUCKET
        assert settlement.date.tzinfo is not None
        assert settlement.involves("p1") and not settlement.involves("p3")

    def test_settlement_rejects_zero_amount(self):
        with pytest.raises(ValidationError):
            Settlement(from_person_id="p2", to_person_id="p1", amount=0, currency="USD")

    def test_group_created_at_alias(self):
        group = Group.model_validate({"name": "Trip", "date": "2024-06-01T10:00:00Z"})
        assert group.created_at.year == 2024
        assert group.members == ()


class TestDerivedModels:
    """Tests for values computed from the ledger."""

    @pytest.mark.parametrize("amount,status", [(12.5, "owed"), (-3.0, "owes"), (0.0, "settled")])
    def test_person_balance_status(self, amount, status):
        balance = PersonBalance(person_id="p1", name="Asha", amount=amount, currency="USD")
        assert balance.status == status


class TestDefaultCategories:
    """Tests for the built-in categories."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "food", "transportation", "accommodation", "entertainment",
            "shopping", "utilities", "health", "other",
        ]
        assert [c.id for c in default_categories()] == expected

    def test_built_ins_not_custom(self):
        assert not any(c.is_custom for c in default_categories())


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.PERSON_ADDED,
            description="Person added: Asha",
        )
        assert event.event_type == AuditEventType.PERSON_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id="e1",
            description="Expense added: Dinner",
            details={"amount": 90, "currency": "USD"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_added"
        assert log_dict["entity_id"] == "e1"
        assert log_dict["correlation_id"] is None
        assert log_dict["details"]["currency"] == "USD"

    def test_audit_event_builder_record_added(self):
        """Test AuditEventBuilder.record_added."""
        correlation_id = uuid4()
        event = AuditEventBuilder.record_added(
            entity_type="settlement",
            entity_id="s1",
            label="p2 -> p1",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.SETTLEMENT_ADDED
        assert event.entity_id == "s1"
        assert event.correlation_id == correlation_id
        assert event.description == "Settlement added: p2 -> p1"

    def test_audit_event_builder_record_removed(self):
        event = AuditEventBuilder.record_removed("category", "pets")
        assert event.event_type == AuditEventType.CATEGORY_REMOVED

    def test_audit_event_builder_unknown_update(self):
        """Only expenses and groups can be updated."""
        with pytest.raises(KeyError):
            AuditEventBuilder.record_updated("person", "p1", "Asha")

    def test_audit_event_builder_rejected(self):
        event = AuditEventBuilder.record_rejected(
            entity_type="expense",
            entity_id="e1",
            issues=[{"issue_type": "split_mismatch"}],
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["issues"][0]["issue_type"] == "split_mismatch"

    def test_audit_event_builder_ledger_computed(self):
        event = AuditEventBuilder.ledger_computed(version=4, currency="INR", bucket_count=3)
        assert event.severity == AuditSeverity.DEBUG
        assert event.entity_type == "ledger"
        assert event.details == {"version": 4, "currency": "INR", "bucket_count": 3}


    def test_audit_event_builder_system_error(self):
        event = AuditEventBuilder.system_error(
            error_type="SnapshotConflictError",
            error_message="Store moved from version 3 to 4 during snapshot",
            details={"store_version": 4},
        )
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.to_log_dict()["error_message"].startswith("Store moved")


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            entity_type="expense",
            entity_id="e1",
            issues=[
                ValidationIssue(
                    field="split_among",
                    issue_type="split_mismatch",
                    message="Shares add up to 30.00, expected 50.00",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            entity_type="settlement",
            entity_id="s1",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="overpayment",
                    message="Pays more than is owed",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.warnings == ["Pays more than is owed"]

    def test_severity_is_checked(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GROUPLEDGER_DEFAULT_CURRENCY", raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.default_currency == "INR"
        assert settings.settled_threshold == 0.01
        assert settings.split_tolerance == 0.01

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GROUPLEDGER_DEFAULT_CURRENCY", " usd ")
        monkeypatch.setenv("GROUPLEDGER_SPLIT_TOLERANCE", "0.5")
        settings = LedgerSettings(_env_file=None)
        assert settings.default_currency == "USD"
        assert settings.split_tolerance == 0.5

    def test_log_level_validated(self, monkeypatch):
        monkeypatch.setenv("GROUPLEDGER_LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            LoggingSettings(_env_file=None)

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("GROUPLEDGER_LOG_LEVEL", "debug")
        assert LoggingSettings(_env_file=None).level == "DEBUG"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
