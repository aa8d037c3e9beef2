# accounting/admin.py
"""
Django admin configuration for accounting models.

Everything here is view-only. Accounts, role mappings and period locks
are command-owned; journal entries are projected from events. Changes
go through accounting/commands.py so that an event is always emitted.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import (
    Account,
    AccountRoleMapping,
    JournalEntry,
    JournalLine,
    PeriodClosing,
)


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin for command-owned and projected models.

    Direct admin edits would bypass the event stream, so add, change and
    delete are all refused.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ReadOnlyInline(admin.TabularInline):
    extra = 0

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class JournalLineInline(ReadOnlyInline):
    model = JournalLine
    readonly_fields = ["line_no", "account", "description", "debit", "credit"]
    fields = ["line_no", "account", "description", "debit", "credit"]


@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "account_type", "normal_balance", "is_active", "parent", "company"]
    list_filter = ["company", "account_type", "is_active"]
    search_fields = ["code", "name", "description"]
    list_select_related = ["company", "parent"]
    ordering = ["company", "code"]


@admin.register(AccountRoleMapping)
class AccountRoleMappingAdmin(ReadOnlyModelAdmin):
    list_display = ["role", "account", "company", "updated_at"]
    list_filter = ["company", "role"]
    list_select_related = ["company", "account"]


@admin.register(PeriodClosing)
class PeriodClosingAdmin(ReadOnlyModelAdmin):
    list_display = ["period_start", "period_end", "status", "closed_by", "closed_at", "company"]
    list_filter = ["company", "status"]


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    list_display = [
        "entry_number", "date", "description_truncated", "kind",
        "status_colored", "reference_type", "company",
    ]
    list_filter = ["company", "status", "kind", "reference_type"]
    search_fields = ["entry_number", "description", "reference_id"]
    date_hierarchy = "date"
    list_select_related = ["company", "posted_by"]
    ordering = ["-date", "-id"]
    inlines = [JournalLineInline]

    def description_truncated(self, obj):
        if len(obj.description) > 50:
            return f"{obj.description[:50]}..."
        return obj.description
    description_truncated.short_description = "Description"

    def status_colored(self, obj):
        colors = {
            JournalEntry.Status.POSTED: "#28a745",
            JournalEntry.Status.REVERSED: "#dc3545",
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, "#000"),
            obj.get_status_display(),
        )
    status_colored.short_description = "Status"
    status_colored.admin_order_field = "status"
