"""Purchase receipts (SignalKeyNFT) and sales bookkeeping."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Predictor, Receipt, Signal
from signalfriend.schemas import PageQuery, ReceiptsQuery
from signalfriend.serializers import receipt_to_dict
from signalfriend.services.predictors import PREDICTOR_SHARE
from signalfriend.services.signals import require_signal
from signalfriend.utils import pagination, round_half_up, utc_now

logger = logging.getLogger(__name__)


def create_receipt_from_event(
    token_id: int,
    content_id: str,
    buyer_address: str,
    predictor_address: str,
    price_usdt: float,
    transaction_hash: str,
    purchased_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Record a purchase from a SignalPurchased event.

    Existing receipts for the token are returned unchanged. A new receipt
    bumps the sales counters of the signal and predictor and credits the
    predictor's share of the price to its earnings.

    Raises:
        ApiError: 404 if the signal is unknown
    """
    with session_scope() as session:
        existing = session.query(Receipt).filter_by(token_id=token_id).first()
        if existing:
            logger.info(f"Receipt for token #{token_id} already exists")
            return receipt_to_dict(existing)

        signal = session.query(Signal).filter_by(content_id=content_id).first()
        if not signal:
            raise ApiError.not_found(f"Signal with contentId '{content_id}' not found")

        receipt = Receipt(
            token_id=token_id,
            content_id=content_id,
            signal_id=signal.id,
            buyer_address=buyer_address.lower(),
            predictor_address=predictor_address.lower(),
            price_usdt=price_usdt,
            purchased_at=purchased_at or utc_now(),
            transaction_hash=transaction_hash.lower(),
        )
        session.add(receipt)

        signal.total_sales = Signal.total_sales + 1
        session.query(Predictor).filter(Predictor.wallet_address == predictor_address.lower()).update(
            {
                Predictor.total_sales: Predictor.total_sales + 1,
                Predictor.total_earnings: Predictor.total_earnings + price_usdt * PREDICTOR_SHARE,
            },
            synchronize_session=False,
        )
        session.flush()
        session.refresh(receipt)
        logger.info(f"Receipt created: token #{token_id} for signal {content_id}")
        return receipt_to_dict(receipt)


def get_my_receipts(buyer: str, query: ReceiptsQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    columns = {"purchasedAt": Receipt.purchased_at, "priceUsdt": Receipt.price_usdt}
    column = columns[query.sort_by]
    order = column.asc() if query.sort_order == "asc" else column.desc()
    with session_scope() as session:
        q = session.query(Receipt).filter(Receipt.buyer_address == buyer.lower())
        total = q.count()
        rows = q.order_by(order, Receipt.token_id).offset((query.page - 1) * query.limit).limit(query.limit).all()
        return [receipt_to_dict(r) for r in rows], pagination(total, query.page, query.limit)


def get_signal_receipts(content_id: str, caller: str, query: PageQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    """Sales of one signal, visible to its predictor only."""
    with session_scope() as session:
        signal = require_signal(session, content_id)
        if signal.predictor_address != caller.lower():
            raise ApiError.forbidden("You can only view sales for your own signals")

        q = session.query(Receipt).filter(Receipt.content_id == content_id)
        total = q.count()
        rows = (
            q.order_by(Receipt.purchased_at.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )
        return [receipt_to_dict(r, with_signal=False) for r in rows], pagination(total, query.page, query.limit)


def get_by_token_id(token_id: int, caller: Optional[str] = None) -> Dict[str, Any]:
    """
    Fetch a receipt; when ``caller`` is given it must be the buyer or the predictor.
    """
    with session_scope() as session:
        receipt = session.query(Receipt).filter_by(token_id=token_id).first()
        if not receipt:
            raise ApiError.not_found(f"Receipt with tokenId '{token_id}' not found")
        if caller and caller.lower() not in (receipt.buyer_address, receipt.predictor_address):
            raise ApiError.forbidden("You can only view your own receipts")
        return receipt_to_dict(receipt)


def find_purchase(content_id: str, buyer: str) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        receipt = session.query(Receipt).filter_by(content_id=content_id, buyer_address=buyer.lower()).first()
        return receipt_to_dict(receipt, with_signal=False) if receipt else None


def has_purchased(content_id: str, buyer: str) -> bool:
    return find_purchase(content_id, buyer) is not None


def get_buyer_stats(buyer: str) -> Dict[str, Any]:
    with session_scope() as session:
        count, spent = (
            session.query(func.count(Receipt.id), func.coalesce(func.sum(Receipt.price_usdt), 0.0))
            .filter(Receipt.buyer_address == buyer.lower())
            .one()
        )
    return {"totalPurchases": int(count or 0), "totalSpent": round_half_up(spent or 0, 2)}


def get_predictor_stats(predictor_address: str) -> Dict[str, Any]:
    with session_scope() as session:
        count, revenue = (
            session.query(func.count(Receipt.id), func.coalesce(func.sum(Receipt.price_usdt), 0.0))
            .filter(Receipt.predictor_address == predictor_address.lower())
            .one()
        )
    return {"totalSales": int(count or 0), "totalRevenue": round_half_up(revenue or 0, 2)}


def get_unique_buyers_count(content_id: str) -> int:
    with session_scope() as session:
        return (
            session.query(func.count(func.distinct(Receipt.buyer_address)))
            .filter(Receipt.content_id == content_id)
            .scalar()
            or 0
        )
