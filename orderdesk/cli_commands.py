"""
Flask CLI commands for catalog and order maintenance.

Commands:
- flask import-products FILE --tenant SLUG: bulk catalog import (JSON or CSV)
- flask recalc-orders --tenant SLUG: recompute every order's totals
- flask seed-discounts --tenant SLUG: create the default discount ladder
"""

import csv
import json
import os

import click
from flask import current_app
from orderdesk.database import get_session
from orderdesk.exceptions import SaasError
from orderdesk.models import Tenant
from orderdesk.services import build_services
from orderdesk.services.cache_service import get_cache


def _load_rows(path):
    """A JSON array (or {"products": [...]}) or a CSV file with a header row."""
    if os.path.splitext(path)[1].lower() == '.csv':
        with open(path, newline='', encoding='utf-8-sig') as fh:
            return list(csv.DictReader(fh))
    with open(path, encoding='utf-8') as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get('products')
    if not isinstance(data, list):
        raise click.ClickException('Expected a JSON array of products')
    return data


def _services_for(slug):
    db_session = get_session()
    tenant = db_session.query(Tenant).filter_by(slug=slug).first()
    if not tenant:
        raise click.ClickException(f'Unknown tenant: {slug}')
    return build_services(db_session, tenant.id, current_app.config, get_cache())


def init_cli_commands(app):
    """Register CLI commands with Flask app."""
    
    @app.cli.command('import-products')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--tenant', 'slug', required=True, help='Tenant slug')
    def import_products(path, slug):
        """Import catalog products from a JSON or CSV file."""
        services = _services_for(slug)
        result = services.catalog.import_products(_load_rows(path))
        
        click.echo(click.style(f'{result.imported} product(s) imported', fg='green'))
        for error in result.errors:
            click.echo(click.style(f"  row {error['row']}: [{error['code']}] {error['error']}", fg='yellow'))
        if result.errors:
            click.echo(f'{len(result.errors)} row(s) rejected')
    
    @app.cli.command('recalc-orders')
    @click.option('--tenant', 'slug', required=True, help='Tenant slug')
    def recalc_orders(slug):
        """Recompute subtotal, discount, total and commissions of every order."""
        services = _services_for(slug)
        failed = 0
        orders = services.orders.list_orders()
        for order in orders:
            try:
                services.engine.recalc_order_totals(order.id)
            except SaasError as e:
                failed += 1
                click.echo(click.style(f'  {order.code}: {e.message}', fg='red'))
        services.stats.invalidate()
        click.echo(f'{len(orders) - failed} order(s) recalculated, {failed} failed')
    
    @app.cli.command('seed-discounts')
    @click.option('--tenant', 'slug', required=True, help='Tenant slug')
    def seed_discounts(slug):
        """Create the default discount tiers for a tenant."""
        created = _services_for(slug).discounts.seed_defaults()
        click.echo(click.style(f'{created} discount tier(s) created', fg='green'))
