"""
Audit Logger

DESIGN DECISION: Every change to the expense list is logged.
This provides:
1. Traceability of adds, edits, deletes and imports
2. Debugging capability when an import silently drops rows
3. A history the user can be shown on request

The audit logger:
- Is synchronous, like the rest of the core
- Never raises; a failed log line must not break a save
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stderr.

    structlog renders the JSON line itself, so the stdlib format
    only carries the message.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Writes every event as a structured log line.
    """

    def __init__(self, logger_name: str = "expense_tracker.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the line was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never take down a save
            return False

        return True

    def log_expense_added(
        self,
        expense_id: str,
        amount: int,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new expense."""
        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expense_updated(
        self,
        expense_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an edit."""
        event = AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expense_deleted(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a deletion."""
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expense_not_found(
        self,
        expense_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an edit or delete aimed at an unknown id."""
        event = AuditEventBuilder.expense_not_found(
            expense_id=expense_id,
            operation=operation,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected input."""
        event = AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expenses_imported(
        self,
        imported: int,
        skipped_lines: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a completed CSV import."""
        event = AuditEventBuilder.expenses_imported(
            imported=imported,
            skipped_lines=skipped_lines,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_import_rejected(
        self,
        reason: str,
        input_lines: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a CSV import that produced nothing."""
        event = AuditEventBuilder.import_rejected(
            reason=reason,
            input_lines=input_lines,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_csv_exported(
        self,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a CSV export."""
        event = AuditEventBuilder.csv_exported(
            record_count=record_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a CSV import).
    Pass it through all subsequent operations.
    """
    return uuid4()
