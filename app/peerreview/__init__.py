import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from app.peerreview.codec import handle_response
from app.peerreview.context import ServerContext
from app.peerreview.errors import BadRequest, SerializationError, SigningError
from app.peerreview.routes import RouteGroup, compose_routes, default_route_groups


def create_app(ctx: ServerContext, groups: list[tuple[str, RouteGroup]] | None = None) -> Flask:
    app = Flask(__name__)
    app.config["ENV"] = ctx.settings.env
    app.extensions["peerreview"] = ctx

    compose_routes(app, default_route_groups(ctx) if groups is None else groups)

    @app.errorhandler(BadRequest)
    def _err_bad_request(e: BadRequest):
        return handle_response(400, e.description)

    @app.errorhandler(SigningError)
    def _err_signing(e: SigningError):
        # Already logged by the issuer.
        return handle_response(500, "Could not issue session token")

    @app.errorhandler(SerializationError)
    def _err_serialization(e: SerializationError):
        app.logger.error("Response serialization failed: %s", e)
        return handle_response(500, "Internal Server Error")

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        return handle_response(e.code or 500, e.description or e.name)

    @app.errorhandler(Exception)
    def _err_500(e: Exception):
        app.logger.exception("Unhandled error: %s", e)
        return handle_response(500, "Internal Server Error")

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")
    return app
