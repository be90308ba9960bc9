"""Django admin configuration for the organizations app."""
from django.contrib import admin

from organizations.models import AuditLog, Department, Organization


class DepartmentInline(admin.TabularInline):
    model = Department
    extra = 0
    fields = ("code", "name", "is_active")


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "requires_director_review", "is_active", "created_at")
    list_filter = ("is_active", "requires_director_review")
    search_fields = ("name", "code")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [DepartmentInline]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "entity_type", "entity_id", "actor", "organization")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "actor__email")
    readonly_fields = (
        "actor", "organization", "action", "entity_type", "entity_id",
        "before_json", "after_json", "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
