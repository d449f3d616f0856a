from marshmallow import Schema, fields, pre_load, validates, ValidationError

MIN_PASSWORD_LENGTH = 8


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _validate_password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserCreateSchema(Schema):
    firstname = fields.String(required=True, validate=lambda s: 1 <= len(s) <= 255)
    lastname = fields.String(required=True, validate=lambda s: 1 <= len(s) <= 255)
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _validate_password(value)


class UserOutSchema(Schema):
    id = fields.Integer()
    email = fields.String()
    firstname = fields.String(allow_none=True)
    lastname = fields.String(allow_none=True)
    createdAt = fields.DateTime(attribute="created_at")
    revokedAt = fields.DateTime(attribute="revoked_at", allow_none=True)
