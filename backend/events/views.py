# events/views.py
"""
Event audit API views.

Every endpoint is scoped to the caller's active company and needs
company.view. Events are append-only, so everything here is read-only.
"""

from rest_framework import generics, views, status
from rest_framework.response import Response

from accounts.authz import resolve_actor, require
from events.models import BusinessEvent, EventBookmark
from events.serializers import (
    EventRowSerializer,
    EventDetailSerializer,
    IntegrityReportSerializer,
    IntegritySummarySerializer,
    BookmarkSerializer,
)
from events.verification import full_integrity_check, get_integrity_summary


class EventListView(generics.ListAPIView):
    """
    GET /api/events/

    Filters: event_type, aggregate_type, aggregate_id, origin,
    occurred_at__gte, occurred_at__lte.
    """

    serializer_class = EventRowSerializer

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "company.view")
        qs = BusinessEvent.objects.filter(
            company=actor.company
        ).select_related('caused_by_user').order_by('-company_sequence')

        params = self.request.query_params
        for field in ("event_type", "aggregate_type", "aggregate_id", "origin"):
            if params.get(field):
                qs = qs.filter(**{field: params[field]})
        if params.get('occurred_at__gte'):
            qs = qs.filter(occurred_at__gte=params['occurred_at__gte'])
        if params.get('occurred_at__lte'):
            qs = qs.filter(occurred_at__lte=params['occurred_at__lte'])

        return qs[:1000]


class EventDetailView(generics.RetrieveAPIView):
    serializer_class = EventDetailSerializer
    lookup_field = 'id'

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "company.view")
        return BusinessEvent.objects.filter(
            company=actor.company
        ).select_related('caused_by_user', 'caused_by_event')


class AggregateEventHistoryView(views.APIView):
    """GET /api/events/aggregate/<aggregate_type>/<aggregate_id>/"""

    def get(self, request, aggregate_type, aggregate_id):
        actor = resolve_actor(request)
        require(actor, "company.view")

        events = list(
            BusinessEvent.objects.filter(
                company=actor.company,
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
            ).order_by('sequence')[:500]
        )
        if not events:
            return Response(
                {'detail': 'No events found for this aggregate.'},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response({
            'aggregate_type': aggregate_type,
            'aggregate_id': aggregate_id,
            'event_count': len(events),
            'first_event_at': events[0].occurred_at,
            'last_event_at': events[-1].occurred_at,
            'events': EventRowSerializer(events, many=True).data,
        })


class IntegrityCheckView(views.APIView):
    """GET /api/events/integrity-check/ -> full sequence gap scan (owners and admins)"""

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "company.manage_users")
        result = full_integrity_check(actor.company)
        return Response(IntegrityReportSerializer(result).data)


class IntegritySummaryView(views.APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "company.view")
        return Response(IntegritySummarySerializer(get_integrity_summary(actor.company)).data)


class EventBookmarkListView(generics.ListAPIView):
    """GET /api/events/bookmarks/ -> projection consumer progress"""

    serializer_class = BookmarkSerializer

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "company.view")
        return EventBookmark.objects.filter(
            company=actor.company
        ).select_related('last_event').order_by('consumer_name')
