from __future__ import annotations
import json
from datetime import datetime, timezone
from flask import current_app
from acc_platform.extensions import db, chores_publisher
from swpt_pythonlib import rabbitmq

MAX_INT32 = (1 << 31) - 1
MAX_AUTOMATIC_RETRIES = 3


def get_now_utc():
    return datetime.now(tz=timezone.utc)


def get_today_utc():
    return get_now_utc().date()


def in_values(column, values):
    """Return a check constraint for an enum-like column."""
    return db.CheckConstraint(column.in_(values))


class Signal(db.Model):
    """An outgoing chore message, waiting to be published."""

    __abstract__ = True

    @classmethod
    def send_signalbus_messages(cls, objects):  # pragma: no cover
        assert all(isinstance(obj, cls) for obj in objects)
        messages = (obj._create_message() for obj in objects)
        chores_publisher.publish_messages([m for m in messages])

    def send_signalbus_message(self):  # pragma: no cover
        self.send_signalbus_messages([self])

    def _create_message(self):
        data = self.__marshmallow_schema__.dump(self)
        message_type = data["type"]
        properties = rabbitmq.MessageProperties(
            delivery_mode=2,
            app_id="acc_platform",
            content_type="application/json",
            type=message_type,
        )
        body = json.dumps(
            data,
            ensure_ascii=False,
            check_circular=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf8")

        return rabbitmq.Message(
            exchange="",
            routing_key=current_app.config["CHORES_BROKER_QUEUE"],
            body=body,
            properties=properties,
            mandatory=True,
        )

    inserted_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
