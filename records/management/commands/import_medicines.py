import json

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from records.models import Medicine

FIELD_MAP = {
    'name': 'name',
    'drugName': 'drug_name',
    'medicineName': 'medicine_name',
    'displayName': 'display_name',
    'strength': 'strength',
    'form': 'form',
    'defaultDosage': 'default_dosage',
    'defaultFrequency': 'default_frequency',
    'defaultDuration': 'default_duration',
}


def _fit(field, value):
    return str(value).strip()[:Medicine._meta.get_field(field).max_length]


class Command(BaseCommand):
    help = "Load medicine catalog documents from a JSON array file, updating entries with the same name."

    def add_arguments(self, parser):
        parser.add_argument('path')

    @transaction.atomic
    def handle(self, *args, **opts):
        try:
            with open(opts['path'], encoding='utf-8') as fh:
                docs = json.load(fh)
        except (OSError, ValueError) as e:
            raise CommandError(f"cannot read {opts['path']}: {e}")
        if not isinstance(docs, list):
            raise CommandError("expected a JSON array of medicine documents")

        created = updated = skipped = 0
        for doc in docs:
            if not isinstance(doc, dict):
                skipped += 1
                continue
            values = {f: _fit(f, doc[k]) for k, f in FIELD_MAP.items() if doc.get(k) not in (None, '')}
            name = values.pop('name', None) or values.get('drug_name') or values.get('medicine_name')
            if not name:
                skipped += 1
                continue
            # the catalog may already hold duplicate names; the oldest entry wins
            med = Medicine.objects.filter(name=name).order_by('id').first()
            if med is None:
                Medicine.objects.create(name=name, **values)
                created += 1
                continue
            for field, value in values.items():
                setattr(med, field, value)
            med.save()
            updated += 1
        self.stdout.write(self.style.SUCCESS(f"medicines: {created} created, {updated} updated, {skipped} skipped"))
