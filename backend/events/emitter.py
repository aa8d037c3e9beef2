# events/emitter.py
"""
Event emission functions.

All events MUST be emitted through these functions to ensure:
1. Payload validation against canonical schemas (events/types.py)
2. Idempotency handling
3. Proper sequencing
4. Audit trail (caused_by_user, metadata)

If you get an InvalidEventPayload error, the data dict does not match the
schema defined in events/types.py. Fix the data being passed, don't
disable validation.
"""

from __future__ import annotations

import logging
from typing import Optional, Any, Dict, Union
from datetime import datetime

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.conf import settings

from events.models import BusinessEvent
from events.types import validate_event_payload, BaseEventData
from ops.metrics import record_event_emitted

logger = logging.getLogger(__name__)


def _emit_event_core(
    *,
    company,
    user,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    occurred_at: Optional[datetime],
    idempotency_key: str,
    metadata: Optional[Dict[str, Any]],
    caused_by_event: Optional[BusinessEvent],
    origin: str,
) -> BusinessEvent:
    """
    Validate, deduplicate and persist one event.

    Returns:
        The created BusinessEvent, or the existing one when idempotency_key
        was already used in this company.

    Raises:
        InvalidEventPayload: If data doesn't match the schema
        ValueError: If idempotency_key is missing
    """
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()

    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    if occurred_at is None:
        occurred_at = timezone.now()

    existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
    if existing:
        logger.debug(
            "Idempotent replay of %s",
            event_type,
            extra={"idempotency_key": idempotency_key, "event_id": str(existing.id)},
        )
        return existing

    # Retry covers two races: another worker inserted the same idempotency
    # key, or two inserts collided on the same aggregate sequence.
    for attempt in range(3):
        try:
            with transaction.atomic():
                event = BusinessEvent.objects.create(
                    company=company,
                    event_type=event_type,
                    aggregate_type=aggregate_type,
                    aggregate_id=str(aggregate_id),
                    data=data,
                    metadata=metadata or {},
                    caused_by_user=user,
                    caused_by_event=caused_by_event,
                    occurred_at=occurred_at,
                    idempotency_key=idempotency_key,
                    origin=origin,
                )
            record_event_emitted(event_type)
            return event
        except IntegrityError:
            existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
            if existing:
                return existing

            if attempt == 2:
                raise

    raise RuntimeError("Failed to emit event after retries")


def emit_event(
    actor=None,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    idempotency_key: str,
    company=None,
    user=None,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
    caused_by_event: Optional[BusinessEvent] = None,
    origin: str = BusinessEvent.EventOrigin.HUMAN,
) -> BusinessEvent:
    """
    Emit a business event with payload validation.

    Pass either an ActorContext (actor=...) or an explicit company (and
    optionally user). The data parameter can be a dict matching the schema
    for the event type or a BaseEventData instance.

    Example:
        emit_event(
            actor=actor,
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=account.public_id,
            data=AccountCreatedData(
                account_public_id=str(account.public_id),
                code="1-1001",
                name="Kas",
                account_type="cash_bank",
                normal_balance="DEBIT",
            ),
            idempotency_key=f"account.created:{account.public_id}",
        )

    Raises:
        InvalidEventPayload: If data doesn't match the event type schema
    """
    if actor is not None:
        company = actor.company
        user = actor.user
    elif company is None:
        raise TypeError("emit_event() requires company when actor is not provided")

    return _emit_event_core(
        company=company,
        user=user,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        data=data,
        occurred_at=occurred_at,
        idempotency_key=idempotency_key,
        metadata=metadata,
        caused_by_event=caused_by_event,
        origin=origin,
    )


def emit_event_no_actor(
    company,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    *,
    user=None,
    occurred_at: Optional[datetime] = None,
    idempotency_key: str,
    metadata: Optional[Dict[str, Any]] = None,
    caused_by_event: Optional[BusinessEvent] = None,
) -> BusinessEvent:
    """
    Emit a system-initiated event (company bootstrap, scheduled jobs).

    Payload validation is still enforced.
    """
    return _emit_event_core(
        company=company,
        user=user,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        data=data,
        occurred_at=occurred_at,
        idempotency_key=idempotency_key,
        metadata=metadata,
        caused_by_event=caused_by_event,
        origin=BusinessEvent.EventOrigin.SYSTEM,
    )


def get_aggregate_events(company, aggregate_type: str, aggregate_id: Any) -> list[BusinessEvent]:
    """
    Aggregate stream ordering.

    Per-aggregate sequence keeps replays deterministic within the
    aggregate, independent of other aggregates' interleaving.
    """
    return list(
        BusinessEvent.objects.filter(
            company=company,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
        ).order_by("sequence")
    )


def get_company_events_by_type(
    company,
    event_types: list[str],
    since_event: Optional[BusinessEvent] = None,
    limit: int = 1000,
) -> list[BusinessEvent]:
    """
    Company-wide stream ordering.

    Uses company_sequence so projections and bookmarks advance on the same clock.
    """
    qs = BusinessEvent.objects.filter(company=company, event_type__in=event_types)
    if since_event:
        qs = qs.filter(company_sequence__gt=since_event.company_sequence)
    return list(qs.order_by("company_sequence")[:limit])
