from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    pre_load,
    validate,
    validates,
)

from models.schemas.user import _norm_email, _validate_password
from models.user import parse_roles


MIN_RESET_TOKEN_LENGTH = 8


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=MIN_RESET_TOKEN_LENGTH))
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        _validate_password(value)


class AccessClaimsSchema(Schema):
    """
    Strict shape of a verified access-token payload.
    - userId must be an integer (booleans rejected)
    - iat is a number of seconds, fractional allowed
    - roles must be a list; entries that are not recognized roles are dropped
    - any structural mismatch raises ValidationError
    """

    class Meta:
        unknown = EXCLUDE

    userId = fields.Integer(required=True, strict=True)
    roles = fields.List(fields.Raw(), required=True)
    iat = fields.Float(load_default=None)
    exp = fields.Integer(strict=True, load_default=None)
    jti = fields.String(load_default=None)

    @pre_load
    def reject_bool_user_id(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("userId"), bool):
            raise ValidationError("userId must be an integer.", "userId")
        return data

    @pre_load
    def reject_non_numeric_iat(self, data, **kwargs):
        iat = data.get("iat") if isinstance(data, dict) else None
        if iat is not None and (isinstance(iat, bool) or not isinstance(iat, (int, float))):
            raise ValidationError("iat must be a number.", "iat")
        return data

    @post_load
    def filter_roles(self, data, **kwargs):
        data["roles"] = parse_roles(data["roles"])
        return data
