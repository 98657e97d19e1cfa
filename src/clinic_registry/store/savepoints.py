"""
Savepoint utilities for handling expected database constraint violations.

An INSERT that may lose a find-or-create race runs inside a savepoint so
the violation rolls back only that statement and the outer transaction
stays usable for the re-read.
"""

from contextlib import contextmanager
from typing import Any, Dict, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .integrity_policy import (
    ExpectedIntegrityTag,
    classify_integrity_error,
    log_expected_violation,
    log_unexpected_violation,
)


@contextmanager
def expected_conflict_savepoint(
    session: Session,
    expected_tags: Set[ExpectedIntegrityTag],
    operation_context: Dict[str, Any],
):
    """
    Run the body in a SAVEPOINT, absorbing the listed unique violations.

    On an expected violation the savepoint is rolled back, the tag is stored
    under ``operation_context["integrity_tag"]`` and the block exits
    normally. The caller checks the tag and re-reads the winning row. Any
    other error rolls the savepoint back and propagates.

    Args:
        session: Session with an open outer transaction
        expected_tags: Violations that mean "someone else inserted it first"
        operation_context: Logging context; receives ``integrity_tag``

    Usage:
        context = {"operation": "attach_dentist", "entity_id": str(dentist_id)}
        with expected_conflict_savepoint(
            session, {ExpectedIntegrityTag.ACTIVE_AFFILIATION_EXISTS}, context
        ):
            repos.affiliations.add(link)

        if "integrity_tag" in context:
            link = repos.affiliations.get_active(clinic_id, dentist_id)
    """
    savepoint = session.begin_nested()

    try:
        yield
        savepoint.commit()

    except IntegrityError as exc:
        savepoint.rollback()

        tag = classify_integrity_error(exc)
        if tag is None or tag not in expected_tags:
            log_unexpected_violation(exc, operation_context)
            raise

        operation_context["integrity_tag"] = tag
        log_expected_violation(tag, exc, operation_context)

    except BaseException:
        savepoint.rollback()
        raise
