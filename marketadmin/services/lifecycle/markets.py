"""Market lifecycle: the generic operations plus the availability flag."""

from sqlalchemy.orm import Session

from marketadmin.services.lifecycle.availability import AvailabilityLifecycle
from marketadmin.services.lifecycle.profiles import MARKET


class MarketLifecycle(AvailabilityLifecycle):
    """Unavailable markets cannot be assigned to vendors or listings."""

    def __init__(self, db: Session):
        super().__init__(db, MARKET)
