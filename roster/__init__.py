"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from roster.database import init_db, db_session
from roster.utils.tenant_resolver import TenantPathMiddleware
import traceback
import os

csrf = CSRFProtect()


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection (JSON clients fetch a token from /api/csrf-token)
    csrf.init_app(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'success': False, 'error': 'Session expired or invalid CSRF token. Reload and try again.'}), 400

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Initialize Flask-Mail for password links
    from roster.services.email_service import init_mail
    init_mail(app)

    # Initialize Redis cache (tenant lookups)
    from roster.services.cache_service import init_cache
    init_cache(app)

    # Setup Prometheus metrics instrumentation
    from roster.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # /tenant/<slug>/... prefix is stripped before routing
    app.wsgi_app = TenantPathMiddleware(app.wsgi_app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host (tenant subdomain)
            x_port=1,
            x_prefix=0
        )

    # Initialize database
    init_db(app)

    # Multi-Tenant: resolve tenant context before each request
    from roster.middleware import load_tenant_context

    @app.before_request
    def before_request_handler():
        """Load tenant context for each request."""
        load_tenant_context()

    # Error Handlers
    from roster.exceptions import RosterError

    @app.errorhandler(RosterError)
    def handle_roster_error(error):
        """Handle custom application exceptions."""
        db_session.rollback()
        if error.status_code >= 500:
            app.logger.error(f"RosterError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"RosterError [{error.status_code}] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method Not Allowed'}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException) and error.code < 500:
            return jsonify({'success': False, 'error': error.description}), error.code
        db_session.rollback()
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500

    # Register blueprints
    from roster.blueprints.public import public_bp
    from roster.blueprints.developer import developer_bp
    from roster.blueprints.admin import admin_bp
    from roster.blueprints.employee import employee_bp
    from roster.blueprints.metrics import metrics_bp

    app.register_blueprint(public_bp)
    app.register_blueprint(developer_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from roster.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"BASE_DOMAIN={app.config.get('BASE_DOMAIN')}")
    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")

    return app
