# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/brewplan/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to brewplan (PowerShell: $env:FLASK_APP="brewplan").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load a small demo brewery: suppliers, ingredients, a recipe, vessels, a customer.
#
# Inventory inspection:
# - python -m flask inventory positions [--as-of 2026-01-31]
#   On hand / allocated / available / on order / projected per item.
# - python -m flask inventory finished-goods
#   Finished goods per recipe and format, flagging over-allocation.
#
# Planning:
# - python -m flask planning demand [--as-of 2026-01-31]
#   Committed demand per product and format; unfulfillable groups marked.
# - python -m flask planning materials
#   Raw material needs of planned batches with shortfall.
# - python -m flask planning suggestions [--as-of 2026-01-31]
#   Recipes whose order demand is not covered by stock or batches in progress.
# - python -m flask planning purchases [--as-of 2026-01-31]
#   Short materials with required-by and order-by dates.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, InventoryItem, Recipe, Supplier, Vessel
from .services import batch_service, catalog_service, inventory_service, planning_service, recipe_service
from .time_utils import parse_iso_date


def _as_of(value):
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--as-of")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed')
@with_appcontext
def seed_system():
    """Load demo reference data (skipped if any recipe exists)."""
    if db.session.query(Recipe).first() is not None:
        click.echo("SKIP Data already present")
        return

    malt_co = catalog_service.create_supplier(name="Barrett Burston", lead_time_days=5)
    hop_co = catalog_service.create_supplier(name="Hop Products Australia", lead_time_days=10)

    pale = catalog_service.create_inventory_item(
        name="Pale Malt", unit="kg", category="grain", unit_cost_cents=350,
        reorder_point=25, reorder_qty=50, supplier_id=malt_co.id,
    )
    galaxy = catalog_service.create_inventory_item(
        name="Galaxy Hops", unit="g", category="hop", unit_cost_cents=9,
        reorder_point=500, reorder_qty=1000, supplier_id=hop_co.id,
    )
    yeast = catalog_service.create_inventory_item(
        name="Safale US-05", unit="each", category="yeast", unit_cost_cents=800, reorder_point=5, reorder_qty=10,
    )

    recipe = recipe_service.create_recipe(
        name="Pacific Pale Ale", style="Pale Ale", batch_size_litres=1000, estimated_total_days=21,
        target_og=1.050, target_fg=1.010,
    )
    recipe_service.add_ingredient(recipe.id, inventory_item_id=pale.id, quantity=200, usage_stage="mash")
    recipe_service.add_ingredient(recipe.id, inventory_item_id=galaxy.id, quantity=1500, usage_stage="whirlpool")
    recipe_service.add_ingredient(recipe.id, inventory_item_id=yeast.id, quantity=10, usage_stage="ferment")
    recipe_service.set_recipe_status(recipe.id, "active")

    for name in ("FV-01", "FV-02"):
        batch_service.create_vessel(name=name, capacity_litres=1200)
    catalog_service.create_customer(name="The Local Taphouse", customer_type="pub")

    click.echo(
        f"PASS Seeded {db.session.query(Supplier).count()} suppliers, "
        f"{db.session.query(InventoryItem).count()} items, {db.session.query(Vessel).count()} vessels, "
        f"{db.session.query(Customer).count()} customer"
    )


@click.group('inventory')
def inventory_group():
    """Stock position inspection."""


@inventory_group.command('positions')
@click.option('--as-of', 'as_of', default=None, help='Business date (YYYY-MM-DD)')
@with_appcontext
def inventory_positions(as_of):
    """Print per-item positions."""
    positions = inventory_service.position_for_all(as_of=_as_of(as_of))
    if not positions:
        click.echo("No inventory items.")
        return
    click.echo(f"{'Item':<30} {'Unit':<5} {'OnHand':>10} {'Alloc':>10} {'Avail':>10} {'OnOrder':>10} {'Proj':>10}")
    for p in positions:
        flag = " REORDER" if p.below_reorder_point else ""
        click.echo(
            f"{p.item_name[:30]:<30} {p.unit:<5} {p.on_hand:>10.2f} {p.allocated:>10.2f} "
            f"{p.available:>10.2f} {p.on_order:>10.2f} {p.projected:>10.2f}{flag}"
        )


@inventory_group.command('finished-goods')
@with_appcontext
def inventory_finished_goods():
    """Print finished goods per recipe and format."""
    positions = inventory_service.finished_goods_positions()
    if not positions:
        click.echo("No finished goods.")
        return
    for p in positions:
        flag = " OVER-ALLOCATED" if p.over_allocated else ""
        click.echo(
            f"{p.product_name[:30]:<30} {p.format:<14} on_hand={p.on_hand} "
            f"reserved={p.reserved} available={p.available}{flag}"
        )


@click.group('planning')
def planning_group():
    """Planning views."""


@planning_group.command('demand')
@click.option('--as-of', 'as_of', default=None, help='Business date (YYYY-MM-DD)')
@with_appcontext
def planning_demand(as_of):
    """Print committed demand against finished goods."""
    view = planning_service.demand_view(as_of=_as_of(as_of))
    if not view.demand_by_product:
        click.echo("No committed demand.")
        return
    for d in view.demand_by_product:
        marker = "FAIL" if d.unfulfillable else "PASS"
        click.echo(
            f"{marker} {d.recipe_name[:30]:<30} {d.format:<14} demand={d.quantity_demanded} "
            f"available={d.available} shortfall={d.shortfall} ({d.order_count} orders)"
        )


@planning_group.command('materials')
@with_appcontext
def planning_materials():
    """Print raw material needs of planned batches."""
    rows = planning_service.materials_requirements()
    if not rows:
        click.echo("No planned batches.")
        return
    for r in rows:
        click.echo(
            f"{r['inventory_item_name'][:30]:<30} need={r['quantity_needed']:.2f} {r['unit']} "
            f"available={r['quantity_available']:.2f} on_order={r['quantity_on_order']:.2f} "
            f"shortfall={r['shortfall']:.2f}"
        )


@planning_group.command('suggestions')
@click.option('--as-of', 'as_of', default=None, help='Business date (YYYY-MM-DD)')
@with_appcontext
def planning_suggestions(as_of):
    """Print recipes that need brewing to meet order demand."""
    rows = planning_service.suggested_brews(as_of=_as_of(as_of))
    if not rows:
        click.echo("No brews needed.")
        return
    for s in rows:
        marker = "LATE" if s["overdue"] else "BREW"
        click.echo(
            f"{marker} {s['recipe_name'][:30]:<30} unmet={s['unmet_demand']} "
            f"active_batches={s['active_batch_count']} brew_by={s['latest_brew_date'] or '-'}"
        )


@planning_group.command('purchases')
@click.option('--as-of', 'as_of', default=None, help='Business date (YYYY-MM-DD)')
@with_appcontext
def planning_purchases(as_of):
    """Print when to order each short material."""
    timing = planning_service.purchase_timing(as_of=_as_of(as_of))
    if not timing["items"]:
        click.echo("No material shortfalls.")
    for r in timing["items"]:
        marker = "LATE" if r["overdue"] else "BUY"
        click.echo(
            f"{marker} {r['inventory_item_name'][:30]:<30} short={r['shortfall']:.2f} {r['unit']} "
            f"order_by={r['order_by'] or '-'} supplier={r['supplier_name'] or '-'}"
        )
    for po in timing["pending_deliveries"]:
        click.echo(f"  incoming {po['po_number']} from {po['supplier_name']} due {po['expected_delivery_date'] or '-'}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(planning_group)
