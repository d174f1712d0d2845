# manage.py
import sys

from app import create_app
from vibeflo.database.db_manager import db


def create_db():
    """Creates the database tables for the configured SQLALCHEMY_DATABASE_URI."""
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"Database tables created at {app.config['SQLALCHEMY_DATABASE_URI']}")


def drop_db():
    """Drops every VibeFlo table. Songs, playlists and users are lost."""
    app = create_app()
    with app.app_context():
        db.drop_all()
        print("Database tables dropped!")


COMMANDS = {
    'create_db': create_db,
    'drop_db': drop_db,
}


if __name__ == '__main__':
    if len(sys.argv) > 1:
        command = COMMANDS.get(sys.argv[1])
        if command is None:
            print(f"Unknown command: {sys.argv[1]}")
            print("Usage: python manage.py [create_db|drop_db]")
            sys.exit(1)
        command()
    else:
        print("No command provided. Usage: python manage.py [create_db|drop_db]")
