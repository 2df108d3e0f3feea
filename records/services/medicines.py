from typing import Optional

from django.db.models import Q

from records.models import Medicine

NAME_FIELDS = ('name', 'drug_name', 'medicine_name', 'display_name')
AUTOCOMPLETE_LIMIT = 10


def find_medicine(name: str) -> Optional[dict]:
    name = (name or '').strip()
    if not name:
        return None
    med = (Medicine.objects
           .filter(Q(name__iexact=name) | Q(drug_name__iexact=name) | Q(medicine_name__iexact=name))
           .order_by('id')
           .first())
    return med.to_document() if med else None


def autocomplete(q: str, limit: int = AUTOCOMPLETE_LIMIT) -> list[str]:
    q = (q or '').strip()
    if not q:
        return []
    limit = max(1, min(limit, AUTOCOMPLETE_LIMIT))
    cond = Q()
    for f in NAME_FIELDS:
        cond |= Q(**{f'{f}__istartswith': q})
    results: list[str] = []
    for row in Medicine.objects.filter(cond).order_by('name', 'id').values_list(*NAME_FIELDS)[:limit * 3]:
        label = next((v for v in row if v), None)
        if label and label not in results:
            results.append(label)
        if len(results) >= limit:
            break
    return results
