"""
Asset Report Command
====================
Prints the depreciation ledger summary and status breakdown.

Usage:
    python manage.py asset_report
    python manage.py asset_report --status allocated
    python manage.py asset_report --export report.csv
"""

import csv

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count

from assets.models import Asset
from assets.services import disposal_totals, maintenance_totals, summarize


class Command(BaseCommand):
    help = 'Generates asset ledger report'

    def add_arguments(self, parser):
        parser.add_argument(
            '--status',
            type=str,
            help='Filter exported assets by status',
        )
        parser.add_argument(
            '--export',
            type=str,
            help='Export to CSV file',
        )

    def handle(self, *args, **options):
        status_filter = options.get('status')
        export_file = options.get('export')

        if status_filter and status_filter not in dict(Asset.STATUS_CHOICES):
            raise CommandError(f"Unknown status '{status_filter}'")

        summary = summarize()
        disposals = disposal_totals()
        maintenance = maintenance_totals()

        # Display summary
        self.stdout.write('\n=== ASSET LEDGER ===\n')
        self.stdout.write(f'Total Assets: {summary["total_assets"]}')
        self.stdout.write(f'Cost Basis: {summary["total_cost_basis"]:,.2f}')
        self.stdout.write(
            f'Accumulated Depreciation: {summary["total_accumulated_depreciation"]:,.2f}'
        )
        self.stdout.write(f'Net Book Value: {summary["total_nbv"]:,.2f}')
        self.stdout.write(
            f'Maintenance: {maintenance["total_records"]} record(s) '
            f'(cost {maintenance["total_cost"]:,.2f})'
        )
        self.stdout.write(
            f'Disposals: {disposals["total_disposed"]} '
            f'(gain/loss {disposals["total_gain_loss"]:,.2f})\n'
        )

        # Status breakdown
        self.stdout.write('Status Breakdown:')
        status_counts = Asset.objects.values('current_status').annotate(count=Count('id'))
        for row in sorted(status_counts, key=lambda r: r['current_status']):
            self.stdout.write(f'  {row["current_status"]}: {row["count"]}')

        # Export to CSV if requested
        if export_file:
            assets = Asset.objects.all().order_by('asset_id')
            if status_filter:
                assets = assets.filter(current_status=status_filter)

            with open(export_file, 'w', newline='', encoding='utf-8') as csvfile:
                writer = csv.writer(csvfile)
                writer.writerow([
                    'Asset ID', 'Asset Name', 'Type', 'Status', 'Location',
                    'Depreciation Method', 'Useful Life (months)',
                    'Cost Basis', 'Accumulated Depreciation', 'NBV'
                ])

                for asset in assets:
                    writer.writerow([
                        asset.asset_id,
                        asset.asset_name,
                        asset.asset_type,
                        asset.current_status,
                        asset.current_location,
                        asset.depreciation_method or '',
                        asset.useful_life_months or '',
                        asset.cost_basis,
                        asset.accumulated_depreciation,
                        asset.nbv,
                    ])

            self.stdout.write(
                self.style.SUCCESS(f'\n✓ Report exported to {export_file}')
            )
