"""Sharpline API services package."""
from .odds_feed import OddsFeedClient
from .refresher import OddsRefresher

__all__ = ["OddsFeedClient", "OddsRefresher"]
