"""
ORM-level immutability enforcement.

``before_update`` and ``before_delete`` mapper listeners reject changes to
evidence rows during flush, before any SQL is sent.  A rejected flush
raises ImmutabilityViolationError and logs ``immutability_violation_blocked``.

Protected rows:

    Entity                       | Frozen
    -----------------------------|----------------------------------
    GapStatusHistoryEntry        | always (append-only)
    AuditEvent                   | always (append-only)
    RolloverAuditLog             | always (append-only)
    RolloverReconciliationRecord | always (append-only)
    RolloverRuleHistory          | always (append-only)
    ReportingPeriod              | once LOCKED; never deletable (before_flush)
    DataPoint                    | while its period is LOCKED

``updated_at``/``updated_by`` may change on any frozen row.  The flush that
locks a period (status, integrity_hash, locked_at, locked_by together) is
allowed; every later change is not.  A data point's period status is read
through the flush connection, so an unloaded period is still checked.

Usage:
    register_immutability_listeners()    # once at startup
    unregister_immutability_listeners()  # tests only
"""

from sqlalchemy import event, inspect, text
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from esg_kernel.exceptions import ImmutabilityViolationError
from esg_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Audit metadata that may change even on frozen rows
_AUDIT_FIELDS = frozenset({"updated_at", "updated_by"})

_LOCKED = "locked"


def _blocked(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


# Append-only records


def _reject_append_only_update(mapper, connection, target):
    entity_type = type(target).__name__
    raise _blocked(
        entity_type,
        target.id,
        "UPDATE",
        f"{entity_type} records are append-only and cannot be modified",
    )


def _reject_append_only_delete(mapper, connection, target):
    entity_type = type(target).__name__
    raise _blocked(
        entity_type,
        target.id,
        "DELETE",
        f"{entity_type} records are append-only and cannot be deleted",
    )


# Reporting periods


def _period_was_locked(target) -> bool:
    """Status before this flush: the stored one, not the one being written."""
    status = get_history(target, "status")
    if status.deleted:
        previous = status.deleted[0]
    elif status.added:
        return False
    else:
        previous = target.status
    return getattr(previous, "value", previous) == _LOCKED


def _guard_period_update(mapper, connection, target):
    if not _period_was_locked(target):
        return
    changed = _changed_fields(target)
    if changed:
        raise _blocked(
            "ReportingPeriod",
            target.id,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on locked period",
            field=changed[0],
        )


def _reject_period_deletes_before_flush(session, flush_context, instances):
    """
    Refuse any flush that deletes a period.

    Runs before the flush plan exists: by ``before_delete`` time the unit of
    work has already nulled the period's sections.
    """
    from esg_kernel.models.reporting_period import ReportingPeriod

    for obj in list(session.deleted):
        if isinstance(obj, ReportingPeriod):
            raise _blocked(
                "ReportingPeriod",
                obj.id,
                "DELETE",
                "Reporting periods cannot be deleted",
            )


# Data points


def _section_period_is_locked(connection, section_id) -> bool:
    status = connection.execute(
        text(
            "SELECT p.status FROM report_sections s "
            "JOIN reporting_periods p ON p.id = s.period_id "
            "WHERE s.id = :section_id"
        ),
        {"section_id": str(section_id)},
    ).scalar()
    return status == _LOCKED


def _guard_data_point_update(mapper, connection, target):
    if _changed_fields(target) and _section_period_is_locked(connection, target.section_id):
        raise _blocked(
            "DataPoint",
            target.id,
            "UPDATE",
            "Data points of a locked period cannot be modified",
        )


def _guard_data_point_delete(mapper, connection, target):
    if _section_period_is_locked(connection, target.section_id):
        raise _blocked(
            "DataPoint",
            target.id,
            "DELETE",
            "Data points of a locked period cannot be deleted",
        )


# Registration


def _listeners():
    """(model, event name, listener) for every protected model."""
    from esg_kernel.models.audit_event import AuditEvent
    from esg_kernel.models.data_point import DataPoint, GapStatusHistoryEntry
    from esg_kernel.models.reporting_period import ReportingPeriod
    from esg_kernel.models.rollover_record import (
        RolloverAuditLog,
        RolloverReconciliationRecord,
    )
    from esg_kernel.models.rollover_rule import RolloverRuleHistory

    append_only = (
        GapStatusHistoryEntry,
        AuditEvent,
        RolloverAuditLog,
        RolloverReconciliationRecord,
        RolloverRuleHistory,
    )
    table = []
    for model in append_only:
        table.append((model, "before_update", _reject_append_only_update))
        table.append((model, "before_delete", _reject_append_only_delete))
    table += [
        (ReportingPeriod, "before_update", _guard_period_update),
        (DataPoint, "before_update", _guard_data_point_update),
        (DataPoint, "before_delete", _guard_data_point_delete),
        (Session, "before_flush", _reject_period_deletes_before_flush),
    ]
    return table


def register_immutability_listeners():
    """Install every listener.  Registering twice is harmless."""
    for model, event_name, listener in _listeners():
        if not event.contains(model, event_name, listener):
            event.listen(model, event_name, listener)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners():
    """Remove every listener.  Only for tests that must write frozen rows."""
    for model, event_name, listener in _listeners():
        if event.contains(model, event_name, listener):
            event.remove(model, event_name, listener)
