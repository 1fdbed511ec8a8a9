"""Write-path validation package."""

from groupledger.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
