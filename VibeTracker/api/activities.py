"""
Activity session and gamification resources
"""
import logging
from functools import wraps

from flask import current_app, request
from flask_restful import Resource
from marshmallow import ValidationError as SchemaValidationError

from ..errors import VibeTrackerError
from ..utils.api_response import domain_error_response, error_response, success_response
from ..utils.auth_helper import get_current_user_id, require_auth
from .schemas import (
    ActivityCancelSchema,
    ActivityCompleteSchema,
    ActivityStartSchema,
    RoutePointBatchSchema,
    RoutePointSchema,
    UserProfileSchema,
)

logger = logging.getLogger(__name__)


def get_session_service():
    return current_app.extensions['vibetracker_service']


def map_domain_errors(f):
    """Turn schema and domain errors into JSON error responses"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SchemaValidationError as e:
            return error_response("Invalid request data", details=e.messages, status_code=400,
                                  code="validation_error")
        except VibeTrackerError as e:
            logger.warning(f"{type(e).__name__} in {request.method} {request.path}: {e.message}")
            return domain_error_response(e)

    return decorated_function


def _json_body():
    return request.get_json(silent=True) or {}


class ApiResource(Resource):
    # require_auth runs first, then domain errors are mapped
    method_decorators = [map_domain_errors, require_auth]


class ActivityListResource(ApiResource):
    def post(self):
        """Start a session, or plan one with plan_only (POST /api/activities)"""
        data = ActivityStartSchema().load(_json_body())
        service = get_session_service()
        user_id = get_current_user_id()
        if data.pop('plan_only'):
            result = service.plan_session(user_id, **data)
        else:
            result = service.start_session(user_id, **data)
        return success_response(result.to_dict(), status_code=201)


class ActivityResource(ApiResource):
    def get(self, session_id):
        """Live view of a session (GET /api/activities/<session_id>)"""
        return success_response(get_session_service().get_session(session_id, get_current_user_id()))


class ActivityStartResource(ApiResource):
    def post(self, session_id):
        """Start a planned session (POST /api/activities/<session_id>/start)"""
        result = get_session_service().start_session(get_current_user_id(), session_id=session_id)
        return success_response(result.to_dict())


class ActivityRoutePointsResource(ApiResource):
    def post(self, session_id):
        """Add one route point, or a batch under 'points' (POST /api/activities/<session_id>/route-points)"""
        body = _json_body()
        service = get_session_service()
        user_id = get_current_user_id()
        if 'points' in body:
            data = RoutePointBatchSchema().load(body)
            return success_response(service.add_route_points(session_id, user_id, data['points']))
        data = RoutePointSchema().load(body)
        accepted = service.add_route_point(session_id, user_id, **data)
        return success_response({'accepted': accepted})


class ActivityRouteResource(ApiResource):
    def get(self, session_id):
        """Route points with route statistics (GET /api/activities/<session_id>/route)"""
        return success_response(get_session_service().get_route(session_id, get_current_user_id()))


class ActivityPauseResource(ApiResource):
    def post(self, session_id):
        """Pause an active session (POST /api/activities/<session_id>/pause)"""
        result = get_session_service().pause_session(session_id, get_current_user_id())
        return success_response(result.to_dict())


class ActivityResumeResource(ApiResource):
    def post(self, session_id):
        """Resume a paused session (POST /api/activities/<session_id>/resume)"""
        result = get_session_service().resume_session(session_id, get_current_user_id())
        return success_response(result.to_dict())


class ActivityCompleteResource(ApiResource):
    def post(self, session_id):
        """Complete a session and award XP (POST /api/activities/<session_id>/complete)"""
        data = ActivityCompleteSchema().load(_json_body())
        result = get_session_service().complete_session(session_id, get_current_user_id(), **data)
        return success_response(result.to_dict())


class ActivityCancelResource(ApiResource):
    def post(self, session_id):
        """Cancel a session without reward (POST /api/activities/<session_id>/cancel)"""
        data = ActivityCancelSchema().load(_json_body())
        result = get_session_service().cancel_session(session_id, get_current_user_id(), reason=data['reason'])
        return success_response(result.to_dict())


class UserProfileResource(ApiResource):
    def put(self):
        """Update weight, timezone or display name (PUT /api/users/me/profile)"""
        data = UserProfileSchema().load(_json_body())
        profile = get_session_service().upsert_profile(
            get_current_user_id(),
            display_name=data['display_name'],
            weight_kg=data['weight_kg'],
            timezone_name=data['timezone'],
        )
        return success_response(profile.to_dict())


class UserGamificationResource(ApiResource):
    def get(self):
        """Level, streak and badge summary (GET /api/users/me/gamification)"""
        return success_response(get_session_service().get_gamification_profile(get_current_user_id()))
