# events/verification.py
"""
Event stream integrity checks.

The company_sequence counter must be gap-free: every emitted event takes
the next number under a row lock on CompanyEventCounter. A gap means a
row was removed behind the model's back.
"""

from django.db.models import Count, Max

from events.models import BusinessEvent, CompanyEventCounter


def find_sequence_gaps(company, limit: int = 100) -> list:
    """Return up to `limit` missing company_sequence ranges as (start, end) pairs."""
    gaps = []
    expected = 1
    sequences = (
        BusinessEvent.objects
        .filter(company=company)
        .order_by("company_sequence")
        .values_list("company_sequence", flat=True)
    )
    for seq in sequences.iterator():
        if seq > expected:
            gaps.append((expected, seq - 1))
            if len(gaps) >= limit:
                break
        expected = seq + 1
    return gaps


def get_integrity_summary(company) -> dict:
    stats = BusinessEvent.objects.filter(company=company).aggregate(
        total=Count("id"),
        max_sequence=Max("company_sequence"),
    )
    total = stats["total"] or 0
    max_sequence = stats["max_sequence"] or 0

    counter = CompanyEventCounter.objects.filter(company=company).first()
    origins = dict(
        BusinessEvent.objects.filter(company=company)
        .values_list("origin")
        .annotate(n=Count("id"))
        .values_list("origin", "n")
    )
    return {
        "total_events": total,
        "max_sequence": max_sequence,
        "counter_sequence": counter.last_sequence if counter else 0,
        "has_potential_gaps": total != max_sequence,
        "origin_breakdown": origins,
    }


def full_integrity_check(company) -> dict:
    summary = get_integrity_summary(company)
    gaps = find_sequence_gaps(company)
    counter_ahead = summary["counter_sequence"] < summary["max_sequence"]
    return {
        "total_events": summary["total_events"],
        "max_sequence": summary["max_sequence"],
        "sequence_gaps": [list(gap) for gap in gaps],
        "counter_behind_stream": counter_ahead,
        "is_valid": not gaps and not counter_ahead,
    }
