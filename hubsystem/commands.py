"""
Database initialization commands.

    flask --app run init-db          create tables and seed defaults
    flask --app run init-db --drop   drop everything first
"""

import click
from flask import current_app

from hubsystem.models import db, Category, Hub
from hubsystem.services.user_service import UserService

DEFAULT_CATEGORIES = ['Technology', 'Innovation', 'Entrepreneurship', 'Research', 'Community']

SAMPLE_HUBS = [
    {
        "name": "Innovation Hub",
        "description": "A community for students building new products, prototypes and research ideas.",
        "card_bio": "Build, test and launch ideas with peers",
        "categories": ['Innovation', 'Technology'],
    },
    {
        "name": "Entrepreneurship Hub",
        "description": "Connects student founders with mentors, programmes and startup events.",
        "card_bio": "From idea to venture",
        "categories": ['Entrepreneurship'],
    },
]


def seed_defaults():
    """Create the default admin, categories and sample hubs when missing. Returns the admin."""
    config = current_app.config
    admin = UserService.get_user_by_email(config['DEFAULT_ADMIN_EMAIL'])
    if admin is None:
        admin = UserService.create_user(
            email=config['DEFAULT_ADMIN_EMAIL'],
            password=config['DEFAULT_ADMIN_PASSWORD'],
            role='admin',
            welcome=False,
            first_name='System',
            last_name='Administrator',
        )

    categories = {}
    for name in DEFAULT_CATEGORIES:
        category = Category.query.filter_by(name=name).first()
        if category is None:
            category = Category(name=name)
            db.session.add(category)
        categories[name] = category

    for sample in SAMPLE_HUBS:
        if Hub.query.filter_by(name=sample["name"]).first():
            continue
        hub = Hub(name=sample["name"], description=sample["description"], card_bio=sample["card_bio"])
        hub.categories = [categories[c] for c in sample["categories"]]
        db.session.add(hub)

    db.session.commit()
    return admin


def register_commands(app):
    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop all tables before creating them.')
    def init_db(drop):
        """Create all database tables and seed default data."""
        if drop:
            click.confirm('This deletes all data. Continue?', abort=True)
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Database tables created.')

        admin = seed_defaults()
        click.echo(f'Default admin account: {admin.email}')
