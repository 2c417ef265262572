from .admin import admin_api  # noqa
from .health import health_api  # noqa
from . import specs  # noqa
