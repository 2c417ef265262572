from .certificates import *  # noqa
from .status_updates import *  # noqa
from .stripe_connect import *  # noqa
from .transfers import *  # noqa
