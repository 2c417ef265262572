import warnings
from sqlalchemy.exc import SAWarning
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from swpt_pythonlib.flask_signalbus import (
    SignalBusMixin,
    AtomicProceduresMixin,
)
from swpt_pythonlib import rabbitmq
from flask_smorest import Api


warnings.filterwarnings(
    "ignore",
    r"Reset agent is not active.  This should not occur unless there was"
    r" already a connectivity error in progress",
    SAWarning,
)


class CustomAlchemy(AtomicProceduresMixin, SignalBusMixin, SQLAlchemy):
    pass


db = CustomAlchemy()
migrate = Migrate()
chores_publisher = rabbitmq.Publisher(url_config_key="CHORES_BROKER_URL")
api = Api()
