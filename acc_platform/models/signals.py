from __future__ import annotations
from flask import current_app
from marshmallow import Schema, fields
from acc_platform.extensions import db
from .common import Signal


class classproperty(object):
    def __init__(self, f):
        self.f = f

    def __get__(self, obj, owner):
        return self.f(owner)


class RetryTransferSignal(Signal):
    class __marshmallow__(Schema):
        type = fields.Constant("RetryTransfer")
        transfer_id = fields.Integer()
        base_delay_seconds = fields.Integer()
        inserted_at = fields.DateTime(data_key="ts")

    __marshmallow_schema__ = __marshmallow__()

    signal_id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, nullable=False)
    base_delay_seconds = db.Column(db.Integer, nullable=False)

    @classproperty
    def signalbus_burst_count(self):
        return current_app.config["APP_FLUSH_RETRY_TRANSFER_BURST_COUNT"]


class PayoutTransactionSignal(Signal):
    # Inserted by the payment flow, in the same database transaction
    # which completes the transaction, and by the "payout_transaction"
    # CLI command. Both go through `enqueue_transaction_payout`.

    class __marshmallow__(Schema):
        type = fields.Constant("PayoutTransaction")
        transaction_id = fields.Integer()
        inserted_at = fields.DateTime(data_key="ts")

    __marshmallow_schema__ = __marshmallow__()

    signal_id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, nullable=False)

    @classproperty
    def signalbus_burst_count(self):
        return current_app.config["APP_FLUSH_PAYOUT_TRANSACTION_BURST_COUNT"]
