"""
Integrity policy for classifying storage constraint violations.

Two questions are answered here. First, is an IntegrityError one of the
benign find-or-create races a resolver knows how to recover from (a tag)?
Second, for everything else, which domain error kind does it map to?
Violations that fit neither are passed through unclassified.
"""

from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError  # type: ignore

from ..core.errors import ConflictError, DomainError, ValidationError
from ..utils.logging_config import get_logger


logger = get_logger('database')

PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"


class ExpectedIntegrityTag(Enum):
    """Tags for constraint violations that signal a lost creation race."""

    PERSON_TAX_ID_TAKEN = "person_tax_id_taken"
    CLINIC_PERSON_TAKEN = "clinic_person_taken"
    DENTIST_PERSON_TAKEN = "dentist_person_taken"
    ACTIVE_AFFILIATION_EXISTS = "active_affiliation_exists"
    USER_EMAIL_TAKEN = "user_email_taken"


# SQLite reports the indexed columns (or the index name for expression
# indexes); PostgreSQL reports the index name.
CONSTRAINT_TAG_MAP: Dict[str, ExpectedIntegrityTag] = {
    "people.tax_id_number": ExpectedIntegrityTag.PERSON_TAX_ID_TAKEN,
    "ux_people_tax_id_number_active": ExpectedIntegrityTag.PERSON_TAX_ID_TAKEN,
    "clinics.person_id": ExpectedIntegrityTag.CLINIC_PERSON_TAKEN,
    "ux_clinics_person_id_active": ExpectedIntegrityTag.CLINIC_PERSON_TAKEN,
    "dentists.person_id": ExpectedIntegrityTag.DENTIST_PERSON_TAKEN,
    "ux_dentists_person_id_active": ExpectedIntegrityTag.DENTIST_PERSON_TAKEN,
    "clinic_dentists.clinic_id, clinic_dentists.dentist_id": ExpectedIntegrityTag.ACTIVE_AFFILIATION_EXISTS,
    "ux_clinic_dentists_active_pair": ExpectedIntegrityTag.ACTIVE_AFFILIATION_EXISTS,
    "index 'ux_users_email_active'": ExpectedIntegrityTag.USER_EMAIL_TAKEN,
    "ux_users_email_active": ExpectedIntegrityTag.USER_EMAIL_TAKEN,
}


def _driver_error_code(exc: IntegrityError) -> Optional[str]:
    """SQLSTATE from psycopg2 (pgcode) or psycopg 3 (sqlstate)."""
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _error_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig else str(exc)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    if _driver_error_code(exc) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in _error_message(exc)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a foreign key violation."""
    if _driver_error_code(exc) == PG_FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in _error_message(exc)


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract constraint name from IntegrityError."""
    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name

    # SQLite format: "UNIQUE constraint failed: table.column1, table.column2"
    error_msg = _error_message(exc)
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip()

    return None


def classify_integrity_error(exc: IntegrityError) -> Optional[ExpectedIntegrityTag]:
    """
    Classify an IntegrityError to determine if it's a known creation race.

    Args:
        exc: The IntegrityError exception to classify

    Returns:
        ExpectedIntegrityTag if the violated constraint is a known one, None otherwise
    """
    if not is_unique_violation(exc):
        return None

    constraint_name = extract_constraint_name(exc)
    if constraint_name is None:
        return None

    return CONSTRAINT_TAG_MAP.get(constraint_name)


def classify_storage_error(exc: BaseException) -> Optional[DomainError]:
    """Map a storage failure to a domain error, or None when unclassifiable.

    Not-found and unauthorized are never inferred from storage errors.
    """
    if not isinstance(exc, IntegrityError):
        return None
    if is_unique_violation(exc):
        return ConflictError("resource already exists")
    if is_foreign_key_violation(exc):
        return ValidationError("invalid relationship reference")
    return None


def map_database_error(exc: BaseException) -> BaseException:
    """Return the classified domain error, or the original exception unchanged."""
    if isinstance(exc, DomainError):
        return exc
    classified = classify_storage_error(exc)
    return classified if classified is not None else exc


def log_expected_violation(
    tag: ExpectedIntegrityTag, exc: IntegrityError, context: Dict[str, Any]
) -> None:
    """
    Log an expected integrity violation at INFO level with structured context.

    Args:
        tag: The classification tag for this violation
        exc: The original IntegrityError
        context: Additional context for logging (operation, entity IDs, etc.)
    """
    logger.info(
        "Expected integrity violation (creation race lost, re-reading)",
        extra={
            "integrity_tag": tag.value,
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_type": context.get("entity_type", "unknown"),
            "entity_id": context.get("entity_id"),
        },
    )


def log_unexpected_violation(exc: IntegrityError, context: Dict[str, Any]) -> None:
    """
    Log an unexpected integrity violation at ERROR level.

    Args:
        exc: The IntegrityError that was not expected
        context: Additional context for logging
    """
    logger.error(
        "Unexpected integrity violation",
        extra={
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_type": context.get("entity_type", "unknown"),
            "entity_id": context.get("entity_id"),
            "error_message": str(exc),
        },
        exc_info=exc,
    )
