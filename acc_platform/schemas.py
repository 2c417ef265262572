from marshmallow import (
    Schema,
    fields,
    validate,
    validates,
    ValidationError,
    EXCLUDE,
)
from acc_platform.models import MAX_INT32


class ValidateTypeMixin:
    @validates("type")
    def validate_type(self, value, **kwargs):
        if f"{value}MessageSchema" != type(self).__name__:
            raise ValidationError("Invalid type.")


class RetryTransferMessageSchema(ValidateTypeMixin, Schema):
    """``RetryTransfer`` message schema."""

    class Meta:
        unknown = EXCLUDE

    type = fields.String(required=True)
    transfer_id = fields.Integer(
        required=True, validate=validate.Range(min=1, max=MAX_INT32)
    )
    base_delay_seconds = fields.Integer(
        required=True, validate=validate.Range(min=1, max=MAX_INT32)
    )
    ts = fields.DateTime(required=True)


class PayoutTransactionMessageSchema(ValidateTypeMixin, Schema):
    """``PayoutTransaction`` message schema."""

    class Meta:
        unknown = EXCLUDE

    type = fields.String(required=True)
    transaction_id = fields.Integer(
        required=True, validate=validate.Range(min=1, max=MAX_INT32)
    )
    ts = fields.DateTime(required=True)
