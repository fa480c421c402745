# assets/management/commands/generate_depreciation.py
"""
Generate Depreciation Command
=============================
Charges one month of depreciation to every depreciable asset.

Usage:
    python manage.py generate_depreciation
    python manage.py generate_depreciation --period 2025-03
    python manage.py generate_depreciation --previous
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from assets.exceptions import AssetError
from assets.services import generate_depreciation


class Command(BaseCommand):
    help = 'Generates monthly depreciation schedules for assets'

    def add_arguments(self, parser):
        parser.add_argument(
            '--period',
            type=str,
            help='Month to generate, YYYY-MM (default: current month)',
        )
        parser.add_argument(
            '--previous',
            action='store_true',
            help='Generate for the previous month',
        )

    def handle(self, *args, **options):
        period = options.get('period')
        if period and options.get('previous'):
            raise CommandError('Use either --period or --previous, not both.')

        if period:
            try:
                as_of = datetime.strptime(period, '%Y-%m').date()
            except ValueError:
                raise CommandError(f"Invalid period '{period}', expected YYYY-MM")
        elif options.get('previous'):
            as_of = timezone.localdate().replace(day=1) - relativedelta(months=1)
        else:
            as_of = timezone.localdate()

        self.stdout.write(f'Generating depreciation for {as_of:%m/%Y}...\n')

        try:
            run = generate_depreciation(as_of=as_of)
        except AssetError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(f'✓ Generated depreciation for {run.generated} asset(s)')
        )
        self.stdout.write(f'  Total charged: {run.total_amount:,.2f}')
        if run.skipped:
            self.stdout.write(f'  Already generated this period: {run.skipped} asset(s)')
        if run.rejected:
            self.stdout.write(
                self.style.WARNING(
                    f'⚠ Unsupported depreciation method, not charged: {", ".join(run.rejected)}'
                )
            )
        if run.out_of_sequence:
            self.stdout.write(
                self.style.WARNING(
                    f'⚠ Already charged for a later month, not charged: '
                    f'{", ".join(run.out_of_sequence)}'
                )
            )
