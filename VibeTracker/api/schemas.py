from marshmallow import Schema, fields, validate, validates, ValidationError
from dateutil import tz

from ..models.activity_catalog import find_activity_type
from ..models.activity_session import MAX_ELEVATION_M, MAX_TAG_LENGTH, MAX_TAGS, MIN_ELEVATION_M


class ActivityStartSchema(Schema):
    """Schema for starting (or planning) an activity session"""
    class Meta:
        unknown = "exclude"  # Ignore unknown fields gracefully
    activity_type = fields.Str(required=True)
    planned_start = fields.DateTime(load_default=None, allow_none=True)
    is_public = fields.Bool(load_default=True)
    tags = fields.List(
        fields.Str(validate=validate.Length(min=1, max=MAX_TAG_LENGTH)),
        load_default=list,
        validate=validate.Length(max=MAX_TAGS),
    )
    name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(min=1, max=100))
    plan_only = fields.Bool(load_default=False)

    @validates('activity_type')
    def validate_activity_type(self, value, **kwargs):
        if find_activity_type(value) is None:
            raise ValidationError(f"Unsupported activity type: {value}")


class RoutePointSchema(Schema):
    """Schema for validating a GPS route point (speed in m/s)"""
    class Meta:
        unknown = "exclude"
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))
    elevation = fields.Float(load_default=None, allow_none=True,
                             validate=validate.Range(min=MIN_ELEVATION_M, max=MAX_ELEVATION_M))
    speed = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    accuracy = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    timestamp = fields.DateTime(required=True)


class RoutePointBatchSchema(Schema):
    """Schema for a batch of route points"""
    class Meta:
        unknown = "exclude"
    points = fields.List(fields.Nested(RoutePointSchema), required=True,
                         validate=validate.Length(min=1, max=1000))


class ActivityCompleteSchema(Schema):
    """Schema for completing a session"""
    class Meta:
        unknown = "exclude"
    end_time = fields.DateTime(load_default=None, allow_none=True)
    manual_calories = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    manual_distance_km = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    perceived_exertion = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1, max=10))
    rating = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1, max=5))
    notes = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=1000))


class ActivityCancelSchema(Schema):
    """Schema for cancelling a session"""
    class Meta:
        unknown = "exclude"
    reason = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))


class UserProfileSchema(Schema):
    """Schema for the gamification profile settings a user can edit"""
    class Meta:
        unknown = "exclude"
    display_name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(min=1, max=64))
    weight_kg = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=20, max=500))
    timezone = fields.Str(load_default=None, allow_none=True)

    @validates('timezone')
    def validate_timezone(self, value, **kwargs):
        if value and tz.gettz(value) is None:
            raise ValidationError(f"Unknown timezone: {value}")
