from decimal import Decimal

from django.core.management.base import BaseCommand

from payments.models import Plan

DEFAULT_PLANS = [
    {
        'title': '3 veces por semana',
        'description': 'Entrenamiento mixto de 1hs. Lunes, miércoles y viernes.',
        'sessions_per_week': 3,
        'price': Decimal('31000.00'),
    },
    {
        'title': '2 veces por semana',
        'description': 'Entrenamiento mixto de 1hs. Martes y jueves.',
        'sessions_per_week': 2,
        'price': Decimal('26000.00'),
    },
    {
        'title': 'Clase personalizada',
        'description': 'Entrenamiento de 1hs. Día a elección.',
        'sessions_per_week': None,
        'price': Decimal('10000.00'),
    },
]


class Command(BaseCommand):
    help = 'Create the training plans advertised on the landing page if they are missing.'

    def handle(self, *args, **kwargs):
        created = 0
        for data in DEFAULT_PLANS:
            _, was_created = Plan.objects.get_or_create(title=data['title'], defaults=data)
            created += int(was_created)
        self.stdout.write(self.style.SUCCESS(f"{created} plan(s) created."))
