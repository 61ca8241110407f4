"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
from flask import Flask


def create_app(orchestrator=None):
    """
    Create and configure the Flask application.

    `orchestrator` replaces the env-configured LeadOrchestrator (tests pass a
    fake one).
    """
    from leadgen.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    if orchestrator is None:
        from leadgen.pipeline.orchestrator import build_orchestrator
        orchestrator = build_orchestrator()
    app.extensions['lead_orchestrator'] = orchestrator

    # Register blueprints
    from leadgen.routes.leads import bp as leads_bp
    from leadgen.routes.health import bp as health_bp

    app.register_blueprint(leads_bp)
    app.register_blueprint(health_bp)

    return app
