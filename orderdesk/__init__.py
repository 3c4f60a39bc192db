"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from orderdesk.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    
    # Error tracking in production only
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=app.config.get('GIT_COMMIT', 'unknown')
        )
    
    # Redis cache (degrades to no-cache when Redis is unreachable)
    from orderdesk.services.cache_service import init_cache
    init_cache(app)
    
    # Prometheus instrumentation
    from orderdesk.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)
    
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)
    
    # Initialize database
    init_db(app)
    
    # Multi-tenant: load user and tenant context before each request
    from orderdesk.middleware import load_user_and_tenant
    
    @app.before_request
    def before_request_handler():
        load_user_and_tenant()
    
    # Error Handlers
    from orderdesk.exceptions import SaasError
    
    @app.errorhandler(SaasError)
    def handle_saas_error(error):
        """Typed application failures become JSON with their own status code."""
        if error.status_code >= 500:
            app.logger.error(f"SaasError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"SaasError [{error.status_code}] {error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code
    
    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description, 'code': error.name}), error.code
    
    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500
    
    # Register blueprints
    from orderdesk.blueprints.products import products_bp
    from orderdesk.blueprints.orders import orders_bp
    from orderdesk.blueprints.discounts import discounts_bp
    from orderdesk.blueprints.stats import stats_bp
    from orderdesk.blueprints.metrics import metrics_bp
    
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(metrics_bp)
    
    # CLI commands
    from orderdesk.cli_commands import init_cli_commands
    init_cli_commands(app)
    
    return app
