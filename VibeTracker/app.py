import os
import logging
import sys
from datetime import datetime

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_restful import Api

from . import __version__
from .config import Config, validate_config
from .services.activity_session_service import ActivitySessionService
from .services.event_publisher import RedisEventPublisher
from .utils.auth_helper import USER_ID_HEADER

logger = logging.getLogger(__name__)


def configure_logging(config=Config):
    """
    Always show ERROR and CRITICAL; VERBOSE_LOGS=true shows INFO and
    FLASK_ENV=development shows DEBUG.
    """
    log_level = logging.ERROR
    if config.VERBOSE_LOGS:
        log_level = logging.INFO
    elif config.FLASK_ENV == 'development':
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Reduce third-party verbosity
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('gunicorn').setLevel(logging.WARNING)
    logging.getLogger('flask').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def init_sentry(config=Config):
    """Initialize Sentry for error tracking (production only)"""
    if not config.SENTRY_DSN or config.FLASK_ENV == 'development' or config.TESTING:
        logger.info("Sentry not initialized (development mode or missing DSN)")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_logging = LoggingIntegration(
        level=logging.ERROR,        # Capture ERROR and above
        event_level=logging.ERROR   # Send ERROR and above as events
    )
    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        integrations=[
            FlaskIntegration(transaction_style='endpoint'),
            sentry_logging,
        ],
        traces_sample_rate=0.1,
        release=os.environ.get("RELEASE_VERSION", __version__),
        environment=config.FLASK_ENV,
    )
    logger.info("Sentry initialized for error tracking")
    return True


def register_resources(api: Api):
    from .api.activities import (
        ActivityCancelResource,
        ActivityCompleteResource,
        ActivityListResource,
        ActivityPauseResource,
        ActivityResource,
        ActivityResumeResource,
        ActivityRoutePointsResource,
        ActivityRouteResource,
        ActivityStartResource,
        UserGamificationResource,
        UserProfileResource,
    )

    api.add_resource(ActivityListResource, '/api/activities')
    api.add_resource(ActivityResource, '/api/activities/<string:session_id>')
    api.add_resource(ActivityStartResource, '/api/activities/<string:session_id>/start')
    api.add_resource(ActivityRoutePointsResource, '/api/activities/<string:session_id>/route-points')
    api.add_resource(ActivityRouteResource, '/api/activities/<string:session_id>/route')
    api.add_resource(ActivityPauseResource, '/api/activities/<string:session_id>/pause')
    api.add_resource(ActivityResumeResource, '/api/activities/<string:session_id>/resume')
    api.add_resource(ActivityCompleteResource, '/api/activities/<string:session_id>/complete')
    api.add_resource(ActivityCancelResource, '/api/activities/<string:session_id>/cancel')
    api.add_resource(UserProfileResource, '/api/users/me/profile')
    api.add_resource(UserGamificationResource, '/api/users/me/gamification')


def register_error_handlers(app: Flask):
    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors"""
        logger.error(f"400 BAD REQUEST: {request.method} {request.path} - Error: {str(error)}")
        return jsonify({
            'error': 'Bad Request',
            'message': 'The request could not be understood by the server',
            'status_code': 400
        }), 400

    @app.errorhandler(401)
    def unauthorized(error):
        """Handle 401 Unauthorized errors"""
        logger.error(f"401 UNAUTHORIZED: {request.method} {request.path}")
        return jsonify({
            'error': 'Unauthorized',
            'message': 'Authentication required',
            'status_code': 401
        }), 401

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors"""
        logger.error(f"404 NOT FOUND: {request.method} {request.path}")
        return jsonify({
            'error': 'Not Found',
            'message': 'The requested resource was not found',
            'status_code': 404
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors"""
        logger.warning(f"405 METHOD NOT ALLOWED: {request.method} {request.path}")
        return jsonify({
            'error': 'Method Not Allowed',
            'message': 'The method is not allowed for the requested URL',
            'status_code': 405
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error"""
        logger.error(f"500 INTERNAL ERROR: {request.method} {request.path} - Error: {str(error)}", exc_info=True)
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred',
            'status_code': 500
        }), 500


def create_app(config=Config, service: ActivitySessionService = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Configuration object (Config or TestingConfig)
        service: Pre-built session service; built from config when omitted
    """
    validate_config(config)
    configure_logging(config)
    init_sentry(config)

    app = Flask(__name__)
    app.config.from_object(config)
    CORS(app, resources={r"/api/*": {"origins": config.CORS_ORIGINS}})

    if service is None:
        publisher = RedisEventPublisher(redis_url=config.REDIS_URL, channel=config.EVENT_CHANNEL)
        service = ActivitySessionService.from_config(config, publisher=publisher)
    app.extensions['vibetracker_service'] = service

    # Domain errors are mapped inside the resources; let anything else reach the app handlers
    app.config['PROPAGATE_EXCEPTIONS'] = app.config.get('TESTING', False)
    api = Api(app)
    register_resources(api)
    register_error_handlers(app)

    @app.before_request
    def load_user():
        """Load the gateway-authenticated user from the X-User-Id header"""
        g.start_time = datetime.now()
        g.user_id = None
        user_id = request.headers.get(USER_ID_HEADER, '').strip()
        if user_id:
            service.ensure_user(user_id)
            g.user_id = user_id

    @app.after_request
    def log_request(response):
        if request.path.startswith('/api/system/health'):
            return response
        if hasattr(g, 'start_time'):
            duration = (datetime.now() - g.start_time).total_seconds()
            if duration > 2.0:  # Log slow requests (>2 seconds)
                logger.warning(f"SLOW REQUEST: {request.method} {request.path} took {duration:.2f}s")
        if response.status_code >= 400:
            logger.error(f"HTTP ERROR {response.status_code}: {request.method} {request.path} - "
                         f"User: {getattr(g, 'user_id', None)}")
        return response

    @app.route('/api/system/health')
    def health():
        publisher = getattr(service, 'publisher', None)
        return jsonify({
            'status': 'ok',
            'version': __version__,
            'event_bus': 'connected' if publisher is not None and publisher.is_connected() else 'disabled',
        })

    logger.info("VibeTracker API initialized")
    return app
