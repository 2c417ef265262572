from .common import *  # noqa
from .accounts import *  # noqa
from .catalog import *  # noqa
from .certificates import *  # noqa
from .payments import *  # noqa
from .signals import *  # noqa
