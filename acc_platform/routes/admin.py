from flask import current_app
from flask.views import MethodView
from flask_smorest import abort
from acc_platform import procedures
from .common import ensure_admin, Blueprint
from .specs import TID
from . import specs
from . import schemas


admin_api = Blueprint(
    "admin",
    __name__,
    url_prefix="/acc",
    description="""**Manage payouts.** Inspect transfers, and retry
    failed transfers.""",
)
admin_api.before_request(ensure_admin)


@admin_api.route("transfers/<int:transferId>", parameters=[TID])
class TransferEndpoint(MethodView):
    @admin_api.response(200, schemas.TransferSchema)
    @admin_api.doc(
        operationId="getTransfer",
        security=specs.SCOPE_ACCESS_READONLY,
        responses={404: specs.TRANSFER_DOES_NOT_EXIST},
    )
    def get(self, transferId):
        """Return a transfer."""

        transfer = procedures.get_transfer(transferId)
        if transfer is None:
            abort(404)

        return transfer


@admin_api.route("transfers/<int:transferId>/retry", parameters=[TID])
class RetryTransferEndpoint(MethodView):
    @admin_api.response(202, schemas.TransferSchema)
    @admin_api.doc(
        operationId="retryTransfer",
        security=specs.SCOPE_ACCESS_MODIFY,
        responses={
            404: specs.TRANSFER_DOES_NOT_EXIST,
            409: specs.TRANSFER_CAN_NOT_BE_RETRIED,
        },
    )
    def post(self, transferId):
        """Retry a failed transfer.

        The retry will be attempted as soon as possible. This is
        allowed only for failed transfers that have not reached the
        maximum number of automatic retries.
        """

        try:
            transfer = procedures.schedule_transfer_retry_now(
                transferId,
                base_delay_seconds=current_app.config[
                    "APP_TRANSFER_RETRY_BASE_DELAY_SECONDS"
                ],
            )
        except procedures.TransferDoesNotExist:
            abort(404)
        except procedures.TransferCanNotBeRetried:
            abort(409)

        return transfer
