"""
seed_demo.py
------------
Seeds (creates or updates) an approved demo company with weekday operating
hours and a small service catalog. Safe to run any time; upserts by company
email and service name.

Usage:
    python manage.py seed_demo
"""

from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction

from booking.models import Service
from companies.models import Company, CompanyStatus, OperatingWindow


COMPANY = {
    "email": "demo-salon@example.com",
    "name": "Demo Salon",
    "phone_number": "+5511900000000",
    "address": "Rua Exemplo, 123",
    "description": "Demo company created by seed_demo.",
}

# Monday..Friday, with a lunch gap.
WINDOWS = [
    {"start_minute": 9 * 60, "end_minute": 12 * 60},
    {"start_minute": 13 * 60, "end_minute": 18 * 60},
]
WEEKDAYS = [1, 2, 3, 4, 5]

CATALOG = [
    {"name": "Haircut",       "description": "Cut and finish",  "duration_minutes": 60,  "price": Decimal("50.00")},
    {"name": "Beard Trim",    "description": "Trim and shape",  "duration_minutes": 30,  "price": Decimal("25.00")},
    {"name": "Hair Coloring", "description": "Full color",      "duration_minutes": 120, "price": Decimal("150.00")},
]


class Command(BaseCommand):
    help = "Seed or update a demo company, its operating hours and services."

    @transaction.atomic
    def handle(self, *args, **options):
        company, _ = Company.objects.update_or_create(
            email=COMPANY["email"],
            defaults={**COMPANY, "status": CompanyStatus.APPROVED},
        )

        windows = 0
        for day in WEEKDAYS:
            for w in WINDOWS:
                _, is_created = OperatingWindow.objects.get_or_create(
                    company=company, day_of_week=day, **w,
                    defaults={"active": True},
                )
                windows += int(is_created)

        created = 0
        updated = 0
        for item in CATALOG:
            svc, is_created = Service.objects.get_or_create(
                company=company,
                name=item["name"],
                defaults={**item, "active": True},
            )
            if is_created:
                created += 1
                continue
            changed = False
            for field in ("description", "duration_minutes", "price"):
                if getattr(svc, field) != item[field]:
                    setattr(svc, field, item[field]); changed = True
            if not svc.active:
                svc.active = True; changed = True
            if changed:
                svc.save()
                updated += 1

        self.stdout.write(self.style.SUCCESS(
            f"Seed complete. Company={company.pk}, Windows+={windows}, "
            f"Services created={created}, updated={updated}"
        ))
