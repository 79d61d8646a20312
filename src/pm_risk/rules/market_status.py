from src.pm_common.errors import MarketLockedError, MarketNotFoundError, MarketResolvedError
from src.pm_market.domain.models import Market


def check_market_tradable(market: Market | None, market_id: str) -> Market:
    """Market must exist, be unresolved and not admin-frozen. Resolution wins over lock."""
    if market is None:
        raise MarketNotFoundError(market_id)
    if market.is_resolved:
        raise MarketResolvedError(market_id)
    if market.is_locked:
        raise MarketLockedError(market_id)
    return market
