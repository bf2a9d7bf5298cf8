# companies/admin.py
from django.contrib import admin
from .models import Company, OperatingWindow
from .services import set_company_status


class OperatingWindowInline(admin.TabularInline):
    model = OperatingWindow
    extra = 0


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "owner", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "email")
    inlines = [OperatingWindowInline]
    actions = ["approve", "reject"]

    @admin.action(description="Approve selected companies")
    def approve(self, request, queryset):
        for company in queryset:
            set_company_status(company, "APPROVED")

    @admin.action(description="Reject selected companies")
    def reject(self, request, queryset):
        for company in queryset:
            set_company_status(company, "REJECTED")


@admin.register(OperatingWindow)
class OperatingWindowAdmin(admin.ModelAdmin):
    list_display = ("company", "day_of_week", "start_label", "end_label", "active")
    list_filter = ("company", "day_of_week", "active")
    search_fields = ("company__name",)
