"""State-change events for realtime fan-out.

Events are collected while a trade or resolution runs and published only
after the transaction commits, so observers never see uncommitted state.
Delivery (websocket push, HUD refresh, leaderboard) happens outside this
service; we only PUBLISH to Redis channels:

  market:{market_id}  -> market.updated, market.resolved
  user:{user_id}      -> position.updated, balance.updated
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import EventType
from src.pm_common.redis_client import get_redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    event_type: EventType
    channel: str
    payload: dict[str, Any]
    occurred_at: str = field(default_factory=lambda: utc_now().isoformat())

    def to_json(self) -> str:
        return json.dumps(
            {
                "type": self.event_type.value,
                "occurred_at": self.occurred_at,
                "data": self.payload,
            },
            default=_json_default,
        )


def _json_default(value: object) -> str:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def market_updated(
    market_id: str, yes_price: Decimal, no_price: Decimal, total_volume: Decimal
) -> DomainEvent:
    return DomainEvent(
        EventType.MARKET_UPDATED,
        f"market:{market_id}",
        {
            "market_id": market_id,
            "yes_price": yes_price,
            "no_price": no_price,
            "total_volume": total_volume,
        },
    )


def market_resolved(
    market_id: str, outcome: str, winners: int, total_payout: Decimal
) -> DomainEvent:
    return DomainEvent(
        EventType.MARKET_RESOLVED,
        f"market:{market_id}",
        {
            "market_id": market_id,
            "outcome": outcome,
            "winners": winners,
            "total_payout": total_payout,
        },
    )


def position_updated(
    user_id: str, market_id: str, outcome: str, shares_owned: Decimal, total_paid: Decimal
) -> DomainEvent:
    return DomainEvent(
        EventType.POSITION_UPDATED,
        f"user:{user_id}",
        {
            "market_id": market_id,
            "outcome": outcome,
            "shares_owned": shares_owned,
            "total_paid": total_paid,
        },
    )


def balance_updated(user_id: str, balance: Decimal) -> DomainEvent:
    return DomainEvent(
        EventType.BALANCE_UPDATED,
        f"user:{user_id}",
        {"user_id": user_id, "balance": balance},
    )


class EventPublisherProtocol(Protocol):
    async def publish(self, events: list[DomainEvent]) -> None: ...


class RedisEventPublisher:
    """PUBLISH each event as JSON on its channel.

    Called after commit: the state change has already happened, so a Redis
    outage is logged and does not fail the request.
    """

    async def publish(self, events: list[DomainEvent]) -> None:
        if not events:
            return
        try:
            redis = await get_redis()
            async with redis.pipeline(transaction=False) as pipe:
                for event in events:
                    pipe.publish(event.channel, event.to_json())
                await pipe.execute()
        except Exception:
            logger.warning(
                "Event publish failed (%d events, first=%s)",
                len(events),
                events[0].event_type.value,
                exc_info=True,
            )
