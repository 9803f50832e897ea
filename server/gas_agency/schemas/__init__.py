"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .contact import *  # noqa: F403
from .delivery import *  # noqa: F403
from .health import *  # noqa: F403
from .inventory import *  # noqa: F403
from .settings import *  # noqa: F403
from .user import *  # noqa: F403
