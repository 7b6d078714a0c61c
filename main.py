import logging
import os
import time

from dotenv import load_dotenv
from flasgger import Swagger
from flask import Flask, g, request
from flask_cors import CORS

from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE

load_dotenv()
from spa_admin.config import Config  # noqa: E402
from spa_admin.extensions import db  # noqa: E402
from spa_admin.errors import register_error_handlers  # noqa: E402
from spa_admin.services.registry import init_booking_services  # noqa: E402
from spa_admin.routes.auth import auth_bp  # noqa: E402
from spa_admin.api.admin.bookings import admin_bookings_bp  # noqa: E402
from spa_admin.api.admin.branches import branches_bp  # noqa: E402
from spa_admin.api.admin.categories import categories_bp  # noqa: E402
from spa_admin.api.admin.dashboard import dashboard_bp  # noqa: E402
from spa_admin.api.admin.pricing import pricing_bp  # noqa: E402
from spa_admin.api.admin.services import services_bp  # noqa: E402
from spa_admin.api.customer.bookings import customer_bookings_bp  # noqa: E402
from spa_admin.api.customer.browse import browse_bp  # noqa: E402

logger = logging.getLogger(__name__)


def create_app(test_config=None, notifier=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    db.init_app(app)

    # Determine host based on environment
    swagger_template = SWAGGER_TEMPLATE.copy()
    swagger_template["host"] = os.environ.get("API_HOST", "127.0.0.1:5000")
    Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)

    register_error_handlers(app)
    init_booking_services(app, notifier=notifier)

    blueprints = [
        auth_bp,
        categories_bp,
        services_bp,
        pricing_bp,
        branches_bp,
        admin_bookings_bp,
        dashboard_bp,
        browse_bp,
        customer_bookings_bp,
    ]
    for bp in blueprints:
        app.register_blueprint(bp)
        logger.debug("%s registered", bp.name)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            response.status_code,
            request.path,
            elapsed_ms,
        )
        return response

    @app.route("/")
    def home():
        """
        Root endpoint - API status
        ---
        tags:
          - Utility
        security: []
        responses:
          200:
            description: API is running
            schema:
              type: object
              properties:
                status:
                  type: string
                message:
                  type: string
        """
        return {"status": "ok", "message": "Backend is running!"}, 200

    logger.info("App created with %d routes", len(list(app.url_map.iter_rules())))
    return app


app = create_app()
