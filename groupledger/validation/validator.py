"""
Write-Path Validation

The balance engine accepts whatever records it is handed: shares that don't
add up, ids nobody has heard of, currencies missing from the set. It has to,
so that one bad record cannot break the ledger. The checks it skips happen
here, before a record is written.

Two kinds of findings:

ERRORS - the record would corrupt the ledger and must not be written:
- shares that don't sum to the expense amount (money would not be conserved)
- a non-positive exchange rate (conversion would divide by zero)
- a duplicate currency code, or a person settling with themself

WARNINGS - the record is usable but probably not what was meant:
- references to people, groups, categories or currencies that don't exist
- a settlement larger than what is currently owed

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the caller decides.
"""

from typing import Optional

from groupledger.config import get_settings
from groupledger.engine.currency import convert
from groupledger.engine.ledger import Ledger
from groupledger.engine.queries import max_settlement_amount
from groupledger.models.records import Currency, Expense, Settlement
from groupledger.models.validation import ValidationIssue, ValidationResult
from groupledger.services.storage import RecordSnapshot


class RecordValidator:
    """Validates records against a snapshot of the store before writing."""

    def __init__(self, split_tolerance: Optional[float] = None):
        """
        Args:
            split_tolerance: Allowed gap between an expense amount and the
                sum of its shares. Defaults to the configured value.
        """
        if split_tolerance is None:
            split_tolerance = get_settings().ledger.split_tolerance
        self._split_tolerance = split_tolerance

    def _reference_issues(
        self,
        snapshot: RecordSnapshot,
        person_ids: list[str],
        currency: str,
        group_id: Optional[str],
    ) -> list[ValidationIssue]:
        issues = []
        known_people = {p.id for p in snapshot.people}

        for person_id in dict.fromkeys(person_ids):
            if person_id not in known_people:
                issues.append(ValidationIssue(
                    field="person_id",
                    issue_type="unknown_reference",
                    message=f"Person {person_id} does not exist",
                    severity="warning",
                    suggested_fix="Add the person first, or pick an existing one",
                ))

        if currency not in {c.code for c in snapshot.currencies}:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="unknown_reference",
                message=f"Currency {currency} is not configured; it will convert at rate 1",
                severity="warning",
                suggested_fix="Add the currency with its exchange rate",
            ))

        if group_id and group_id not in {g.id for g in snapshot.groups}:
            issues.append(ValidationIssue(
                field="group_id",
                issue_type="unknown_reference",
                message=f"Group {group_id} does not exist",
                severity="warning",
            ))

        return issues

    def validate_expense(
        self,
        expense: Expense,
        snapshot: RecordSnapshot,
    ) -> ValidationResult:
        """Check an expense before it is added or updated."""
        issues = []

        split_total = expense.split_total
        if abs(split_total - expense.amount) > self._split_tolerance:
            issues.append(ValidationIssue(
                field="split_among",
                issue_type="split_mismatch",
                message=(
                    f"Shares add up to {split_total:.2f} but the expense "
                    f"amount is {expense.amount:.2f}"
                ),
                severity="error",
                suggested_fix="Adjust the shares so they sum to the amount",
            ))

        seen = set()
        for share in expense.split_among:
            if share.person_id in seen:
                issues.append(ValidationIssue(
                    field="split_among",
                    issue_type="duplicate_share",
                    message=f"Person {share.person_id} has more than one share",
                    severity="warning",
                    suggested_fix="Merge the shares into one",
                ))
            seen.add(share.person_id)

        if expense.category_id not in {c.id for c in snapshot.categories}:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Category {expense.category_id} does not exist",
                severity="warning",
                suggested_fix="Use an existing category or 'other'",
            ))

        issues.extend(self._reference_issues(
            snapshot,
            [expense.paid_by, *(share.person_id for share in expense.split_among)],
            expense.currency,
            expense.group_id,
        ))

        return ValidationResult(entity_type="expense", entity_id=expense.id, issues=issues)

    def validate_settlement(
        self,
        settlement: Settlement,
        snapshot: RecordSnapshot,
        ledger: Optional[Ledger] = None,
    ) -> ValidationResult:
        """
        Check a settlement before it is added.

        If a ledger is given (in any display currency), an amount above
        what the payer currently owes the recipient is flagged.
        """
        issues = []

        if settlement.from_person_id == settlement.to_person_id:
            issues.append(ValidationIssue(
                field="to_person_id",
                issue_type="self_settlement",
                message="A person cannot settle with themself",
                severity="error",
            ))

        issues.extend(self._reference_issues(
            snapshot,
            [settlement.from_person_id, settlement.to_person_id],
            settlement.currency,
            settlement.group_id,
        ))

        if ledger is not None and not any(issue.severity == "error" for issue in issues):
            owed = max_settlement_amount(
                settlement.from_person_id,
                settlement.to_person_id,
                settlement.group_id,
                ledger,
            )
            amount = convert(
                settlement.amount, settlement.currency, ledger.currency, snapshot.currencies
            )
            if amount - owed > self._split_tolerance:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="overpayment",
                    message=(
                        f"Settlement of {amount:.2f} {ledger.currency} is more than "
                        f"the {owed:.2f} currently owed"
                    ),
                    severity="warning",
                    suggested_fix="Settle at most the amount owed",
                ))

        return ValidationResult(entity_type="settlement", entity_id=settlement.id, issues=issues)

    def validate_currency(
        self,
        currency: Currency,
        snapshot: RecordSnapshot,
    ) -> ValidationResult:
        """Check a currency before it joins the set."""
        issues = []

        if currency.exchange_rate <= 0:
            issues.append(ValidationIssue(
                field="exchange_rate",
                issue_type="invalid_value",
                message="Exchange rate must be greater than zero",
                severity="error",
            ))

        if currency.code in {c.code for c in snapshot.currencies}:
            issues.append(ValidationIssue(
                field="code",
                issue_type="duplicate",
                message=f"Currency {currency.code} already exists",
                severity="error",
            ))

        return ValidationResult(entity_type="currency", entity_id=currency.code, issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text version of a result, for showing next to a form."""
        if not result.issues:
            return "All checks passed."

        lines = []
        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("Please fix the following before saving:")
            for issue in errors:
                lines.append(f"  - {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"    ({issue.suggested_fix})")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)
