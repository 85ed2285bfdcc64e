"""
SpecFlow — Models package.

Exposes the shared Flask-SQLAlchemy handle. Domain models live in the
sibling modules and are imported by the application factory so that
``db.create_all()`` and Flask-Migrate see every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
