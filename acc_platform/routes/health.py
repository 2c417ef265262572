import logging
from flask import make_response
from flask.views import MethodView
from flask_smorest import abort
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from acc_platform.extensions import db
from .common import Blueprint
from . import specs

_LOGGER = logging.getLogger(__name__)

health_api = Blueprint(
    "health",
    __name__,
    url_prefix="/acc/health",
    description="""**Liveness of the accreditation platform.** Public
    endpoints which load balancers and orchestrators can poll without
    authentication.
    """,
)


@health_api.route("/check/public")
class HealthCheckEndpoint(MethodView):
    @health_api.response(200)
    @health_api.doc(
        operationId="checkHealth",
        responses={503: specs.DATABASE_UNREACHABLE},
    )
    def get(self):
        """Report whether the platform can reach its database.

        Responds with a `text/plain` document.
        """

        try:
            db.session.execute(select(1))
        except SQLAlchemyError:
            _LOGGER.exception("The database is unreachable.")
            abort(503)

        return make_response(
            "Accreditation platform is up.",
            {"Content-Type": "text/plain"},
        )
