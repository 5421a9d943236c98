"""Flask application factory."""
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from barpos.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache for dashboard / balance reads
    from barpos.services.cache_service import init_cache
    init_cache(app)

    # Prometheus instrumentation
    from barpos.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust the reverse proxy headers
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    init_db(app)

    from barpos.middleware import load_current_user

    @app.before_request
    def before_request_handler():
        """Load the logged-in user for each request."""
        load_current_user()

    @app.after_request
    def add_cors_headers(response):
        """Allow the POS frontend origins to call the API with credentials."""
        origin = request.headers.get('Origin')
        if origin and origin in app.config.get('CORS_ALLOWED_ORIGINS', ()):
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Access-Control-Allow-Credentials'] = 'true'
            response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
            response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
            response.headers['Vary'] = 'Origin'
        return response

    # Error Handlers
    from barpos.exceptions import PosError

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        """Turn service exceptions into {success: false, error}."""
        if error.status_code >= 500:
            app.logger.error(f"PosError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"PosError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'error': error.description}), error.code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'Recurso no encontrado'}), 404

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'success': False, 'error': 'Error interno del servidor'}), 500

    # Register blueprints
    from barpos.blueprints.sales import sales_bp
    from barpos.blueprints.tables import tables_bp
    from barpos.blueprints.products import products_bp
    from barpos.blueprints.cash import cash_bp
    from barpos.blueprints.credits import credits_bp
    from barpos.blueprints.ledger import ledger_bp
    from barpos.blueprints.dashboard import dashboard_bp
    from barpos.blueprints.reports import reports_bp
    from barpos.blueprints.users import users_bp
    from barpos.blueprints.schedules import schedules_bp
    from barpos.blueprints.metrics import metrics_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(tables_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cash_bp)
    app.register_blueprint(credits_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(schedules_bp)
    app.register_blueprint(metrics_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'business': app.config.get('BUSINESS_NAME')})

    from barpos.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
