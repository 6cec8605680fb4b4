"""Pydantic schemas for request/response validation."""

from .analytics import *  # noqa: F403
from .booking import *  # noqa: F403
from .channel import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .rate_plan import *  # noqa: F403
from .sync import *  # noqa: F403
