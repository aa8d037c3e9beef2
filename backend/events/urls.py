# events/urls.py
"""
Audit trail API.

- /                                  company event stream, newest first
- /<uuid>/                           one event with payload
- /aggregate/<type>/<id>/            history of one document or account
- /integrity-check/, /integrity-summary/
- /bookmarks/                        projection progress
"""

from django.urls import path

from events.views import (
    AggregateEventHistoryView,
    EventBookmarkListView,
    EventDetailView,
    EventListView,
    IntegrityCheckView,
    IntegritySummaryView,
)

app_name = "events"

urlpatterns = [
    path("", EventListView.as_view(), name="event-list"),
    path("<uuid:id>/", EventDetailView.as_view(), name="event-detail"),
    path("aggregate/<str:aggregate_type>/<str:aggregate_id>/", AggregateEventHistoryView.as_view(), name="aggregate-history"),
    path("integrity-check/", IntegrityCheckView.as_view(), name="integrity-check"),
    path("integrity-summary/", IntegritySummaryView.as_view(), name="integrity-summary"),
    path("bookmarks/", EventBookmarkListView.as_view(), name="bookmark-list"),
]
