from django.contrib import admin
from .models import Service, Booking

@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "company", "price", "duration_minutes", "active")
    list_filter = ("active", "company")
    search_fields = ("name", "company__name")
    list_editable = ("price", "duration_minutes", "active")  # allow inline toggle

@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "service", "date", "time_slot", "status", "total_price")
    list_filter = ("status", "service__company")
    search_fields = ("user__username", "service__name")
    # Status changes go through the API so the transition rules apply.
    readonly_fields = ("status", "total_price", "created_at", "updated_at")
