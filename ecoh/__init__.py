from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from ecoh.causas import api_bp
from ecoh.core.auth import auth_bp
from ecoh.core.config import Config
from ecoh.core.extensions import db, login_manager, migrate
from ecoh.core.models import RolUsuario, Usuario, seed_demo_data

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    401: "Autenticación requerida",
    403: "Permisos insuficientes",
    404: "Recurso no encontrado",
    405: "Método no permitido",
}


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    register_cli(app)
    register_error_handlers(app)
    return app


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("ecoh").setLevel(level)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        message = ERROR_MESSAGES.get(error.code, error.description)
        return jsonify({"error": message}), error.code

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        logger.exception("Error no controlado", exc_info=getattr(error, "original_exception", error))
        return jsonify({"error": "Error interno del servidor"}), 500


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Delete existing data before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed demo catalogs, users and causas."""
        if reset:
            db.drop_all()
            db.create_all()
        if not Usuario.query.first():
            seed_demo_data(db.session)
            click.echo("Demo data seeded.")
        else:
            click.echo("Seed skipped: existing users found.")

    @app.cli.command("create-user")
    @click.option("--email", required=True, help="Login email.")
    @click.option("--nombre", required=True, help="Display name.")
    @click.option("--password", required=True, help="Initial password.")
    @click.option(
        "--rol",
        type=click.Choice([rol.value for rol in RolUsuario]),
        default=RolUsuario.READ.value,
        show_default=True,
    )
    def create_user(email: str, nombre: str, password: str, rol: str) -> None:
        """Create an application user."""
        email = email.strip().lower()
        if Usuario.query.filter_by(email=email).first():
            raise click.ClickException(f"User {email} already exists.")
        db.session.add(
            Usuario(
                email=email,
                nombre=nombre.strip(),
                password_hash=generate_password_hash(password),
                rol=RolUsuario(rol),
            )
        )
        db.session.commit()
        click.echo(f"User {email} created with role {rol}.")


@login_manager.user_loader
def load_user(user_id: str) -> Usuario | None:
    return db.session.get(Usuario, int(user_id))
