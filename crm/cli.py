"""CLI tools for CRM administration."""

from uuid import UUID

import click

from crm.core.exceptions import CRMError
from crm.core.security import create_session_token
from crm.db import models  # noqa: F401 (registers tables on Base.metadata)
from crm.db.base import Base
from crm.db.enums import Role
from crm.db.session import Database
from crm.schemas.organization import OrganizationCreate, UserCreate
from crm.services import organization_service


@click.group()
@click.pass_context
def cli(ctx: click.Context):
    """CRM CLI tools."""
    ctx.obj = Database.from_settings().init()
    ctx.call_on_close(ctx.obj.shutdown)


@cli.command("init-db")
@click.pass_obj
def init_db(database: Database):
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(database.engine)
    click.echo("✓ Database tables created")


@cli.command("create-org")
@click.option("--name", required=True, help="Organization name")
@click.option("--industry", default=None, help="Industry")
@click.option("--website", default=None, help="Website URL")
@click.pass_obj
def create_org(database: Database, name: str, industry: str | None, website: str | None):
    """
    Create an organization (tenant).

    Example:
        python -m crm.cli create-org --name "Acme Corp" --industry SaaS
    """
    try:
        with database.transaction() as db:
            org = organization_service.create_organization(
                db, OrganizationCreate(name=name, industry=industry, website=website)
            )
            org_id = org.id
    except CRMError as e:
        raise click.ClickException(e.message)
    click.echo(f"✓ Created organization: {name}")
    click.echo(f"  ID: {org_id}")


@cli.command("create-user")
@click.option("--org-id", required=True, type=click.UUID, help="Organization id")
@click.option("--email", required=True, help="Email address")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.USER.value,
    show_default=True,
)
@click.pass_obj
def create_user(database: Database, org_id: UUID, email: str, name: str, role: str):
    """Create a user inside an existing organization."""
    try:
        with database.transaction() as db:
            user = organization_service.create_user(
                db, UserCreate(organization_id=org_id, email=email, name=name, role=Role(role))
            )
            user_id = user.id
    except CRMError as e:
        raise click.ClickException(e.message)
    click.echo(f"✓ Created {role} {email}")
    click.echo(f"  ID: {user_id}")


@cli.command("issue-token")
@click.option("--user-id", required=True, type=click.UUID, help="User id")
@click.option("--hours", type=int, default=None, help="Lifetime in hours (default JWT_EXPIRES_HOURS)")
@click.pass_obj
def issue_token(database: Database, user_id: UUID, hours: int | None):
    """Print a session token for an existing user (value of the auth_token cookie)."""
    db = database.session()
    try:
        user = organization_service.get_user(db, user_id)
        if not user.is_active:
            raise click.ClickException("User is inactive")
        token = create_session_token(user.id, user.organization_id, user.role, expires_hours=hours)
    except CRMError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()
    click.echo(token)


if __name__ == "__main__":
    cli()
