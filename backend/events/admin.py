# events/admin.py
"""
Admin for the event store.

Events are append-only: the admin can browse and search them but never
add, edit or delete. Bookmarks can be paused, resumed or have their error
state cleared while a projection is being investigated.
"""

import json

from django.contrib import admin
from django.utils.html import format_html

from .models import BusinessEvent, EventBookmark
from .serializers import document_label


def _pretty(value):
    return format_html("<pre style='white-space: pre-wrap'>{}</pre>", json.dumps(value, indent=2, default=str))


@admin.register(BusinessEvent)
class BusinessEventAdmin(admin.ModelAdmin):
    list_display = ["company_sequence", "company", "event_type", "document", "caused_by_user", "origin", "occurred_at"]
    list_filter = ["company", "event_type", "aggregate_type", "origin"]
    search_fields = ["aggregate_id", "idempotency_key", "caused_by_user__email"]
    list_select_related = ["company", "caused_by_user"]
    ordering = ["company", "-company_sequence"]
    date_hierarchy = "occurred_at"
    exclude = ["data", "metadata"]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields if f.name not in self.exclude] + ["payload", "context"]

    @admin.display(description="Document")
    def document(self, obj):
        return document_label(obj.data) or f"{obj.aggregate_type}#{obj.aggregate_id}"

    @admin.display(description="Payload")
    def payload(self, obj):
        return _pretty(obj.data)

    @admin.display(description="Metadata")
    def context(self, obj):
        return _pretty(obj.metadata)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EventBookmark)
class EventBookmarkAdmin(admin.ModelAdmin):
    list_display = ["consumer_name", "company", "position", "last_processed_at", "is_paused", "error_count"]
    list_filter = ["consumer_name", "is_paused"]
    list_select_related = ["company", "last_event"]
    readonly_fields = ["consumer_name", "company", "last_event", "last_processed_at", "error_count", "last_error"]
    actions = ["pause", "resume", "clear_errors"]

    @admin.display(description="Position")
    def position(self, obj):
        return obj.last_event.company_sequence if obj.last_event else 0

    def has_add_permission(self, request):
        return False

    @admin.action(description="Pause selected projections")
    def pause(self, request, queryset):
        self.message_user(request, f"Paused {queryset.update(is_paused=True)} bookmark(s).")

    @admin.action(description="Resume selected projections")
    def resume(self, request, queryset):
        self.message_user(request, f"Resumed {queryset.update(is_paused=False)} bookmark(s).")

    @admin.action(description="Clear error state")
    def clear_errors(self, request, queryset):
        self.message_user(request, f"Cleared {queryset.update(error_count=0, last_error='')} bookmark(s).")
