import logging
from datetime import timedelta

import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from routes import health_bp, auth_bp

from models import db
from models.user import User, Role
from otp.policy import utcnow
from otp.store import OtpStore
from security.session import attach_session_cookie
from utils.messaging import Messenger
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def create_app(config_object=Config, messenger=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    app.extensions["otp_messenger"] = messenger or Messenger()

    with app.app_context():
        if app.config.get("CREATE_TABLES"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def _set_session_cookie(resp):
        return attach_session_cookie(resp)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Cache-Control"] = "no-store"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant the ADMIN role to an account by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)

        if admin_role not in user.roles:
            user.roles.append(admin_role)
        db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("purge-otp-codes")
    @click.option("--older-than-hours", default=24, show_default=True, type=int)
    def purge_otp_codes(older_than_hours):
        """Delete one-time codes that expired before the cutoff."""
        cutoff = utcnow() - timedelta(hours=older_than_hours)
        deleted = OtpStore(db.session).purge(cutoff)
        db.session.commit()
        click.echo(f"Deleted {deleted} expired code(s)")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
