from quart import Quart, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException
import logging

load_dotenv()


def create_app(config=None, db_path=None):
    from clinidex.settings import settings
    from .services.container import AppLifecycle, AppServices
    from .services.search_pipeline import SearchError

    services = AppServices.create(config=config, db_path=db_path)
    lifecycle = AppLifecycle(services)

    app = Quart(__name__)
    app.extensions["clinidex"] = services
    app.extensions["clinidex_lifecycle"] = lifecycle

    logging.basicConfig(
        level=str(settings.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from .routes.hooks import enforce_rate_limit, log_search_request
    from .routes.search import search_bp
    from .routes.stats import stats_bp

    app.before_request(enforce_rate_limit)
    app.after_request(log_search_request)

    app.register_blueprint(search_bp)
    app.register_blueprint(stats_bp)

    @app.before_serving
    async def _start_lifecycle() -> None:
        await lifecycle.start()

    @app.after_serving
    async def _stop_lifecycle() -> None:
        await lifecycle.stop()

    @app.errorhandler(SearchError)
    async def handle_search_error(e: SearchError):
        if e.status_code >= 500:
            app.logger.error("Search request failed: %s", e, exc_info=e)
        else:
            app.logger.info("Rejected search request: %s", e)
        return jsonify({"error": str(e)}), e.status_code

    @app.errorhandler(HTTPException)
    async def handle_http_exception(e: HTTPException):
        return jsonify({"error": e.description}), e.code or 500

    @app.errorhandler(Exception)
    async def handle_exception(e):
        app.logger.exception("Unhandled exception: %s", e)
        message = "An unexpected error occurred. Please try again later."
        return jsonify({"error": message}), 500

    app.logger.info("Application initialized")
    return app
