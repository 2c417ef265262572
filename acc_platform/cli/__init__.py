from .common import acc_platform  # noqa
from . import configuring  # noqa
from . import messaging  # noqa
from . import transfers  # noqa
from . import status_updates  # noqa
from . import certificates  # noqa
