import click
from flask.cli import with_appcontext
from samplehub.extensions import db
from samplehub.models import Customer, User

@click.group()
def billing():
    """Billing reconciliation utilities."""

@billing.command("resync")
@click.argument("subscription_id")
@with_appcontext
def billing_resync(subscription_id):
    """Re-fetch a subscription from Stripe and upsert it locally."""
    from samplehub.billing.errors import BillingError
    from samplehub.billing.reconciler import reconcile_by_subscription_id

    try:
        outcome = reconcile_by_subscription_id(subscription_id)
    except BillingError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"Resync {subscription_id}: {outcome.value}")

@click.group()
def credits():
    """Credit pricing."""

@credits.command("show")
@with_appcontext
def credits_show():
    from samplehub.credits.pricing import SampleType, cost_range
    from samplehub.credits.rules import load_price_table

    table = load_price_table()
    for label, is_premium in (("standard", False), ("premium", True)):
        costs = table.costs_for(is_premium)
        parts = ", ".join(f"{t.value}={costs[t]}" for t in SampleType)
        lo, hi = cost_range(is_premium, table)
        click.echo(f"{label}: {parts} (range {lo}-{hi})")
    click.echo(f"stems bundle: +{table.stems_bundle_cost}")

@click.group()
def users():
    """User management."""

@users.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", default=None)
@click.option("--admin", is_flag=True, default=False, help="Grant admin access")
@with_appcontext
def users_create(email, password, name, admin):
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).count():
        raise click.ClickException("User already exists")

    user = User(email=email, is_active=True, is_admin=admin)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    # Every login gets a billing customer; tier starts at free
    db.session.add(Customer(user_id=user.id, email=email, name=name))
    db.session.commit()

    click.echo(f"User created id={user.id} email={user.email} admin={admin}")

def register_cli(app):
    app.cli.add_command(billing)
    app.cli.add_command(credits)
    app.cli.add_command(users)
