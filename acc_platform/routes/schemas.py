from marshmallow import Schema, fields
from acc_platform.models import MAX_AUTOMATIC_RETRIES


TYPE_DESCRIPTION = (
    "The type of this object. Will always be present in the responses from the"
    " server."
)


class TransferSchema(Schema):
    type = fields.Function(
        lambda obj: "Transfer",
        required=True,
        metadata=dict(
            type="string",
            description=TYPE_DESCRIPTION,
            example="Transfer",
        ),
    )
    transfer_id = fields.Integer(
        required=True,
        data_key="transferId",
        metadata=dict(format="int32", example=123),
    )
    transaction_id = fields.Integer(
        required=True,
        data_key="transactionId",
        metadata=dict(format="int32", example=456),
    )
    payee_type = fields.String(
        data_key="payeeType",
        metadata=dict(
            description=(
                'The type of the payee ("acc", "training_center", or'
                ' "instructor").'
            ),
            example="acc",
        ),
    )
    payee_id = fields.Integer(
        data_key="payeeId",
        metadata=dict(format="int32", example=7),
    )
    gross_amount = fields.Decimal(
        as_string=True,
        required=True,
        data_key="grossAmount",
        metadata=dict(example="100.00"),
    )
    commission_amount = fields.Decimal(
        as_string=True,
        required=True,
        data_key="commissionAmount",
        metadata=dict(example="15.00"),
    )
    net_amount = fields.Decimal(
        as_string=True,
        required=True,
        data_key="netAmount",
        metadata=dict(
            description="The amount which is transferred to the payee.",
            example="85.00",
        ),
    )
    currency = fields.String(
        required=True,
        metadata=dict(example="USD"),
    )
    status = fields.String(
        required=True,
        metadata=dict(
            description=(
                'The status of the transfer: "pending", "processing",'
                ' "completed", "failed", or "retrying".'
            ),
            example="failed",
        ),
    )
    retry_count = fields.Integer(
        required=True,
        data_key="retryCount",
        metadata=dict(
            format="int32",
            description=(
                "The number of failed attempts. Failed transfers are"
                " retried automatically, until this number reaches"
                f" {MAX_AUTOMATIC_RETRIES}."
            ),
            example=1,
        ),
    )
    error_message = fields.String(
        data_key="errorMessage",
        metadata=dict(example="Insufficient funds."),
    )
    stripe_transfer_id = fields.String(
        data_key="stripeTransferId",
        metadata=dict(example="tr_1MiN3gLkdIwHu7ixNCZvFdgA"),
    )
    retry_scheduled_for = fields.DateTime(
        data_key="retryScheduledFor",
        metadata=dict(
            description="The moment at which the next retry will be made.",
        ),
    )
    created_at = fields.DateTime(required=True, data_key="createdAt")
    completed_at = fields.DateTime(data_key="completedAt")
    failed_at = fields.DateTime(data_key="failedAt")
