"""Application factory and extension initialization for ExpenseHub."""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect

from config import config_by_name

# Global extension instances -------------------------------------------------

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
mail = Mail()
bcrypt = Bcrypt()


def _configure_logging(app: Flask) -> None:
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def create_app(config_name: Optional[str] = None) -> Flask:
    """Flask application factory."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    config_name = config_name or os.getenv("FLASK_CONFIG", "development")
    config_class = config_by_name.get(config_name.lower())
    if config_class is None:
        raise ValueError(f"Unknown Flask configuration '{config_name}'")

    app.config.from_object(config_class)

    # Instance folder holds SQLite databases and the local receipt store
    os.makedirs(app.instance_path, exist_ok=True)
    if not app.config.get("UPLOAD_FOLDER"):
        app.config["UPLOAD_FOLDER"] = os.path.join(app.instance_path, "uploads")

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message_category = "warning"
    csrf.init_app(app)
    mail.init_app(app)
    bcrypt.init_app(app)

    # Register blueprints
    from expensehub.main import main_bp
    from expensehub.auth import auth_bp
    from expensehub.employee import employee_bp
    from expensehub.manager import manager_bp
    from expensehub.projects import projects_bp
    from expensehub.admin import admin_bp
    from expensehub.api import api_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(manager_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp)
    csrf.exempt(api_bp)

    from expensehub.models import User
    from expensehub.auth.session import get_session
    from expensehub.services.currency_service import format_minor

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[User]:
        return db.session.get(User, int(user_id))

    @app.template_filter("money")
    def money_filter(amount_minor: Optional[int]) -> str:
        return format_minor(amount_minor)

    @app.context_processor
    def inject_auth_session():
        return {"auth_session": get_session()}

    @app.shell_context_processor
    def shell_context():
        return {"db": db, "User": User}

    with app.app_context():
        db.create_all()

    return app
