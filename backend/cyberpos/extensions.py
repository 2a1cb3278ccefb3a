# Overview: Shared Flask extensions; models and services import `db` from here.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# Scripts live in backend/migrations; batch mode so ALTERs work on SQLite
migrate = Migrate(directory="migrations", render_as_batch=True)
