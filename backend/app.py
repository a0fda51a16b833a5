import os
import logging
import sys
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from voting_gateway.routes.account_routes import account_bp
from voting_gateway.routes.candidate_routes import candidate_bp
from voting_gateway.routes.vote_routes import vote_bp
from voting_gateway.services.blockchain_service import ContractCallError, connect_web3
from voting_gateway.services.gateway_context import (
    CONTEXT_EXTENSION,
    DeploymentArtifactError,
    GatewayContext,
    build_context,
    load_deployment_artifact,
)

logger = logging.getLogger(__name__)


def create_app(context: Optional[GatewayContext] = None) -> Flask:
    """Application factory used by the server entry point and tests.

    When no context is given the deployment artifact is loaded and the
    contract bound before the app is returned, so a failure here means the
    server never starts listening.
    """
    load_dotenv()
    app = Flask(__name__)

    if context is None:
        context = initialize_context()
    app.extensions[CONTEXT_EXTENSION] = context

    CORS(app, resources={r"/*": {"origins": "*"}})

    @app.before_request
    def log_request():
        logger.info("%s %s", request.method, request.path)

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"}), 200

    register_blueprints(app)
    register_error_handlers(app)
    configure_logging()

    return app


def initialize_context() -> GatewayContext:
    artifact = load_deployment_artifact()
    web3 = connect_web3()
    return build_context(artifact, web3, private_key=os.getenv("PRIVATE_KEY") or None)


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(candidate_bp)
    app.register_blueprint(vote_bp)
    app.register_blueprint(account_bp)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def route_not_found(error):
        return jsonify({"success": False, "error": "Route not found"}), 404

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"success": False, "error": error.description}), error.code

    @app.errorhandler(Exception)
    def unhandled_error(error: Exception):
        logger.exception("Unhandled error: %s", error)
        return (
            jsonify({"success": False, "error": str(error) or "Internal server error"}),
            500,
        )


def configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def main() -> int:
    load_dotenv()
    configure_logging()
    try:
        application = create_app()
    except (DeploymentArtifactError, ContractCallError) as exc:
        logger.error("Failed to start server: %s", exc)
        return 1

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    logger.info("Voting gateway listening on %s:%s", host, port)
    application.run(host=host, port=port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
