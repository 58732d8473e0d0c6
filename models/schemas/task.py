from marshmallow import EXCLUDE, Schema, fields, validate

from models.schemas.common import StrictBoolean, UTCDateTime
from models.task import TITLE_MAX_LENGTH

MAX_LIMIT = 100
STATUSES = ("all", "completed", "pending")

_title = [validate.Length(min=1, error="Title is required"), validate.Length(max=TITLE_MAX_LENGTH)]


class TaskCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=_title)


class TaskUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    # All optional, but validated if present
    title = fields.String(validate=_title)
    completed = StrictBoolean()


class TaskQuerySchema(Schema):
    class Meta:
        # cache-busting and other unrelated query args are ignored
        unknown = EXCLUDE

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=10, validate=validate.Range(min=1, max=MAX_LIMIT))
    status = fields.String(load_default="all", validate=validate.OneOf(STATUSES))
    search = fields.String(load_default=None)


class TaskOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    completed = fields.Boolean()
    user_id = fields.String(data_key="userId")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")
