from django.contrib import admin

from waitlist.models import Customer, Queue, Tenant, Ticket, TicketEvent


class QueueInline(admin.TabularInline):
    model = Queue
    extra = 0


class TicketEventInline(admin.TabularInline):
    model = TicketEvent
    extra = 0
    can_delete = False
    readonly_fields = ["kind", "actor_kind", "actor_id", "metadata", "created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "fast_lane_fee", "vip_fee", "created_at"]
    search_fields = ["name", "slug"]
    inlines = [QueueInline]


@admin.register(Queue)
class QueueAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "status", "max_concurrent", "max_entries_per_day"]
    list_filter = ["status", "tenant"]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "phone", "is_vip", "is_blocked", "total_visits"]
    list_filter = ["is_vip", "is_blocked", "tenant"]
    search_fields = ["name", "phone"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["number", "queue", "customer_name", "priority", "status", "arrived_at"]
    list_filter = ["status", "priority", "queue__tenant"]
    search_fields = ["number", "customer_name", "phone"]
    # Status only moves through the lifecycle service.
    readonly_fields = ["status", "number", "sequence", "service_day", "service_duration"]
    inlines = [TicketEventInline]
