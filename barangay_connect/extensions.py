"""Flask extensions.

Keeping extension instances in a dedicated module prevents circular imports
and avoids accidentally creating *multiple* SQLAlchemy instances across the
codebase.

Import these objects everywhere:

    from .extensions import db, mail, migrate
"""

from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()
migrate = Migrate()
mail = Mail()
