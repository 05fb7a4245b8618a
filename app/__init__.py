"""
MasterClass Application Factory
"""
from datetime import datetime, timezone
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
import resend
import stripe
from config import config

from app.services.ratelimit import RateLimiter

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
ratelimit = RateLimiter()


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    ratelimit.init_app(app)

    # Vendor clients read their keys from module globals
    stripe.api_key = app.config['STRIPE_SECRET_KEY']
    resend.api_key = app.config['RESEND_API_KEY']

    # Register blueprints
    from app.auth import auth_bp
    from app.clerk_webhook import clerk_webhook_bp
    from app.stripe_webhook import webhook_bp
    from app.checkout import checkout_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(clerk_webhook_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(checkout_bp, url_prefix='/checkout')

    # Webhooks are signed by the sender, checkout is called with a bearer token
    csrf.exempt(clerk_webhook_bp)
    csrf.exempt(webhook_bp)
    csrf.exempt(checkout_bp)

    # Health check endpoint
    @app.route('/healthz')
    def healthz():
        """Health check for load balancers and monitoring"""
        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))
            db_status = "ok"
        except Exception as e:
            app.logger.warning(f'Health check database check failed: {e}')
            db_status = f"error: {e}"

        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "version": app.config["APP_VERSION"],
            "database": db_status,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    # Version endpoint
    @app.route('/version')
    def version():
        """Version and build info"""
        return jsonify({
            "version": app.config["APP_VERSION"],
            "build_time": app.config["BUILD_TIME"],
            "git_commit": app.config["GIT_COMMIT"],
            "features": {
                "clerk_webhook": True,
                "course_checkout": True,
                "pro_plan_checkout": True,
                "welcome_email": bool(app.config.get('SEND_WELCOME_EMAIL')),
            }
        })

    # Only create tables if they don't exist (safe for existing DB)
    with app.app_context():
        from sqlalchemy import inspect
        from app import models  # noqa: F401

        inspector = inspect(db.engine)
        if not inspector.get_table_names():
            app.logger.info('No tables found, creating...')
            db.create_all()

    return app
