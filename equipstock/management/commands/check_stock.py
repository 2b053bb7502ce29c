"""
Management command to verify stock counters.

Checks, for every equipment:
- total == available + reserved + maintenance + damaged
- counters == ledger replay
- counters == unit recount (SERIALIZED only)

Usage:
    python manage.py check_stock
    python manage.py check_stock --tenant acme
    python manage.py check_stock --fix
"""

from django.core.management.base import BaseCommand

from equipstock import stock
from equipstock.buckets import is_balanced
from equipstock.models import Equipment


class Command(BaseCommand):
    """Stock integrity check command."""

    help = 'Verifica a consistência dos contadores de estoque'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige os contadores divergentes'
        )
        parser.add_argument(
            '--tenant',
            help='Verifica apenas os equipamentos deste tenant'
        )

    def handle(self, *args, **options):
        qs = Equipment.objects.order_by('pk')
        if options['tenant']:
            qs = qs.for_tenant(options['tenant'])

        checked = 0
        drifted = 0
        for equipment in qs:
            checked += 1
            problems = self._problems(equipment)
            if not problems:
                continue

            drifted += 1
            for problem in problems:
                self.stdout.write(self.style.WARNING(f'[{equipment.pk}] {equipment.name}: {problem}'))

            if options['fix']:
                fixed = stock.repair(equipment)
                self.stdout.write(f'[{equipment.pk}] corrigido: {fixed}')

        style = self.style.SUCCESS if not drifted else self.style.ERROR
        self.stdout.write(style(f'{checked} equipamento(s) verificado(s), {drifted} com divergência'))

    def _problems(self, equipment) -> list[str]:
        report = stock.verify(equipment)
        counters = report['counters']
        problems = []

        if not is_balanced(counters):
            problems.append(f'buckets não fecham com o total: {counters}')
        if equipment.is_serialized:
            if report['units'] != counters:
                problems.append(f'contadores {counters} != unidades {report["units"]}')
        elif report['ledger'] != counters:
            problems.append(f'contadores {counters} != histórico {report["ledger"]}')
        return problems
