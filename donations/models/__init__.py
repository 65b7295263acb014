# Import all models here so Alembic can discover them.

from donations.models.user import User  # noqa: F401
from donations.models.donation import Donation  # noqa: F401
