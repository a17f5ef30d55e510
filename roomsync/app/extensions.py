"""
extensions.py — Flask extension singletons for RoomSync.

`db` and `ma` are created unbound and attached in create_app() via
init_app(), so the integration suite can build its own "testing" app:

    from roomsync.app.extensions import db, ma

Models subclass db.Model; services receive db.session from the routes.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Request schemas in app/schemas/ subclass marshmallow.Schema, not ma.Schema:
# tests/unit/test_validation_schemas.py loads them with no app context.
ma = Marshmallow()
