"""Public platform statistics for the landing page."""

from typing import Any, Dict

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.models import Predictor, Receipt, Signal
from signalfriend.services.predictors import PREDICTOR_SHARE
from signalfriend.utils import round_half_up, utc_now


def get_public_stats() -> Dict[str, Any]:
    now = utc_now()
    with session_scope() as session:
        total_signals = (
            session.query(func.count(Signal.id))
            .filter(Signal.is_active.is_(True), Signal.expires_at > now)
            .scalar()
        )
        total_predictors = (
            session.query(func.count(Predictor.id)).filter(Predictor.is_blacklisted.is_(False)).scalar()
        )
        total_purchases, volume = session.query(
            func.count(Receipt.id), func.coalesce(func.sum(Receipt.price_usdt), 0.0)
        ).one()

    return {
        "totalSignals": int(total_signals or 0),
        "totalPredictors": int(total_predictors or 0),
        "totalPredictorEarnings": round_half_up(float(volume or 0) * PREDICTOR_SHARE, 2),
        "totalPurchases": int(total_purchases or 0),
    }
