# events/__init__.py
"""
Events app: the event store.

- BusinessEvent: immutable event records, one per business fact
- EventBookmark: consumer progress tracking for projections
- emit_event / emit_event_no_actor: the only way to write events
- events.types: canonical payload schemas, validated at emission time

Usage:
    from events.emitter import emit_event
    from events.types import EventTypes, StockMovedData

    emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_MOVED,
        aggregate_type="StockMovement",
        aggregate_id=movement.public_id,
        data=StockMovedData(...),
        idempotency_key=f"stock.moved:{movement.public_id}",
    )
"""
