from marshmallow import EXCLUDE, Schema, fields, validate, validates, ValidationError

PASSWORD_MIN_LENGTH = 6


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    # Emails are stored exactly as given; uniqueness is case-sensitive.
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    name = fields.String(required=True, validate=validate.Length(max=255))

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")

    @validates("name")
    def validate_name(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Name is required.")


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    name = fields.String()
