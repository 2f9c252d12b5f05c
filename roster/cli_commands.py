"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask reset-db: Drop and recreate all tables
- flask create-developer: Create a platform developer account
- flask create-tenant: Create an active tenant with its first admin user
"""

import click
from roster.database import db_session, create_all, drop_all
from roster.exceptions import RosterError


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('reset-db')
    @click.confirmation_option(prompt='This deletes ALL data of ALL tenants. Continue?')
    def reset_db_command():
        """Drop and recreate database tables."""
        drop_all()
        create_all()
        click.echo(click.style('Database reset.', fg='yellow'))

    @app.cli.command('create-developer')
    @click.option('--username', prompt=True, help='Developer username')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Developer password')
    @click.option('--full-name', default=None, help='Full name')
    def create_developer(username, password, full_name):
        """Create a developer account for the developer portal."""
        from roster.services.auth_service import create_developer as create

        if len(password) < 8:
            click.echo(click.style('Password must be at least 8 characters.', fg='red'))
            return

        try:
            developer = create(db_session, username, password, full_name=full_name)
        except RosterError as e:
            db_session.rollback()
            click.echo(click.style(f'Error: {e.message}', fg='red'))
            return

        click.echo(click.style('Developer created.', fg='green', bold=True))
        click.echo(f'   Username: {developer.username}')
        click.echo(f'   ID: {developer.id}')

    @app.cli.command('create-tenant')
    @click.option('--name', prompt=True, help='Tenant display name')
    @click.option('--slug', prompt=True, help='URL slug (subdomain / path prefix)')
    @click.option('--plan', type=click.Choice(['monthly', 'yearly']), default=None)
    @click.option('--admin-username', prompt=True, help='First admin username')
    @click.option('--admin-password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_tenant(name, slug, plan, admin_username, admin_password):
        """Create an active tenant with its first admin user."""
        from roster.services.tenant_service import create_tenant as create

        try:
            tenant = create(
                db_session, name, slug, actor='cli', plan=plan,
                admin_username=admin_username, admin_password=admin_password,
            )
        except RosterError as e:
            db_session.rollback()
            click.echo(click.style(f'Error: {e.message}', fg='red'))
            return

        click.echo(click.style(f'Tenant "{tenant.name}" created.', fg='green', bold=True))
        click.echo(f'   Slug: {tenant.slug}')
        click.echo(f'   Admin path: /tenant/{tenant.slug}/api/admin/login')
