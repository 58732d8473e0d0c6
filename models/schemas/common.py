from marshmallow import fields

from utils.security import as_utc


class UTCDateTime(fields.DateTime):
    """ISO 8601 with an explicit +00:00 offset, whether or not the driver kept tzinfo."""

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return super()._serialize(as_utc(value), attr, obj, **kwargs)


class StrictBoolean(fields.Boolean):
    """Only JSON true/false; 1, 0, "yes" and friends are rejected."""

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, bool):
            raise self.make_error("invalid", input=value)
        return value
