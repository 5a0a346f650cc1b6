"""
HemoLink API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires the
matching, request, inventory and notification services, and registers the
blueprints and error handlers.
"""

import atexit
import os
from concurrent.futures import ThreadPoolExecutor
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from .middleware.auth import AuthMiddleware
from .domain.matching import MatchingConfig
from .domain.inventory import InventoryConfig
from .services.mongodb import MongoDBService
from .services.auth import AuthService
from .services.geo_index import GeoIndex
from .services.geocoding import Geocoder, GeocoderConfig
from .services.health import HealthCheckService
from .services.hospitals import HospitalService
from .services.inventory import InventoryLedger
from .services.matching import MatchingEngine
from .services.notifications import MongoNotificationGateway, NotificationDispatcher
from .services.requests import BloodRequestService
from .routes.hospitals import hospitals_bp
from .routes.inventory import inventory_bp
from .routes.notifications import notifications_bp
from .routes.requests import requests_bp

info = Info(
    title="HemoLink API",
    version="1.0.0",
    description="Blood donation coordination: donor matching, request lifecycle and hospital inventory"
)

tags = [
    Tag(name="Blood Requests", description="Blood request lifecycle and donor matching"),
    Tag(name="Inventory", description="Per-hospital blood stock management"),
    Tag(name="Hospitals", description="Hospital registration"),
    Tag(name="Notifications", description="User notifications"),
    Tag(name="Health", description="System health and status")
]


def create_app(mongodb_service=None, notification_gateway=None, auth_service=None,
               geocoder=None, config_overrides=None) -> OpenAPI:
    """
    Build the application.

    Collaborators may be injected (tests pass an in-memory store); otherwise
    they are built from environment variables.
    """
    setup_observability()

    app = OpenAPI(__name__, info=info, tags=tags)
    add_observability_middleware(app)

    # Environment configuration
    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'
    app.config['MONGODB_URI'] = os.getenv('MONGODB_URI', 'mongodb://localhost:27017/hemolink_dev')
    app.config['MONGODB_DATABASE'] = os.getenv('MONGODB_DATABASE', 'hemolink_dev')
    app.config['MONGODB_CREATE_INDEXES'] = os.getenv('MONGODB_CREATE_INDEXES', 'false').lower() == 'true'
    app.config['NOTIFICATION_WORKERS'] = int(os.getenv('NOTIFICATION_WORKERS', '0'))
    app.config.update(config_overrides or {})

    # Initialize services
    if mongodb_service is None:
        mongodb_service = MongoDBService(app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'])
        if app.config['MONGODB_CREATE_INDEXES']:
            mongodb_service.create_indexes()

    notification_gateway = notification_gateway or MongoNotificationGateway(mongodb_service)
    executor = None
    if app.config['NOTIFICATION_WORKERS'] > 0:
        executor = ThreadPoolExecutor(
            max_workers=app.config['NOTIFICATION_WORKERS'],
            thread_name_prefix="notifications"
        )
        atexit.register(executor.shutdown)
    dispatcher = NotificationDispatcher(notification_gateway, executor)

    auth_service = auth_service or AuthService()
    geocoder = geocoder or Geocoder(GeocoderConfig.from_env())

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.notification_gateway = notification_gateway
    app.auth_service = auth_service
    app.auth_middleware = AuthMiddleware(auth_service)
    app.matching_engine = MatchingEngine(
        mongodb_service, GeoIndex(mongodb_service), dispatcher, MatchingConfig.from_env()
    )
    app.request_service = BloodRequestService(mongodb_service, dispatcher)
    app.inventory_ledger = InventoryLedger(mongodb_service, dispatcher, InventoryConfig.from_env())
    app.hospital_service = HospitalService(mongodb_service, geocoder)
    health_service = HealthCheckService(mongodb_service)

    ErrorHandlerMiddleware(app)
    register_custom_error_handlers(app)

    app.register_api(requests_bp)
    app.register_api(inventory_bp)
    app.register_api(hospitals_bp)
    app.register_api(notifications_bp)

    @app.get('/api/healthz', tags=[tags[-1]])
    def health_check():
        """Health check endpoint with document store status"""
        health_data = health_service.get_health()
        status_code = 200 if health_data["status"] == "healthy" else 503
        return jsonify(health_data), status_code

    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
