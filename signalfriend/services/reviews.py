"""Ratings left by buyers. Ratings are permanent: no update, no delete."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Predictor, Receipt, Review, Signal
from signalfriend.schemas import CreateReviewBody, PageQuery
from signalfriend.serializers import review_to_dict
from signalfriend.utils import pagination, round_half_up

logger = logging.getLogger(__name__)


def rating_stats(session, signal_id: Optional[str] = None, predictor_address: Optional[str] = None) -> Tuple[float, int]:
    """
    Average score and count over a signal's or a predictor's reviews.

    Returns:
        (average rounded half-up to 1 decimal, count)
    """
    q = session.query(func.avg(Review.score), func.count(Review.id))
    if signal_id is not None:
        q = q.filter(Review.signal_id == signal_id)
    if predictor_address is not None:
        q = q.filter(Review.predictor_address == predictor_address.lower())
    average, count = q.one()
    if not count:
        return 0.0, 0
    return round_half_up(average, 1), int(count)


def create_review(data: CreateReviewBody, caller: str) -> Dict[str, Any]:
    """
    Rate a purchased signal.

    Args:
        data: Receipt token id, score and optional text
        caller: Authenticated wallet; must own the receipt

    Raises:
        ApiError: 404 for an unknown receipt or signal, 403 for another
            wallet's receipt, 409 when the receipt was already rated
    """
    caller = caller.lower()
    with session_scope() as session:
        receipt = session.query(Receipt).filter_by(token_id=data.token_id).first()
        if not receipt:
            raise ApiError.not_found(f"Receipt with tokenId '{data.token_id}' not found")
        if receipt.buyer_address != caller:
            raise ApiError.forbidden("You can only rate signals you have purchased")
        if session.query(Review.id).filter_by(token_id=data.token_id).first():
            raise ApiError.conflict("You have already rated this purchase")

        signal = session.query(Signal).filter_by(content_id=receipt.content_id).first()
        if not signal:
            raise ApiError.not_found(f"Signal with contentId '{receipt.content_id}' not found")

        review = Review(
            token_id=data.token_id,
            signal_id=signal.id,
            content_id=signal.content_id,
            buyer_address=caller,
            predictor_address=signal.predictor_address,
            score=data.score,
            review_text=data.review_text or "",
        )
        session.add(review)
        session.flush()

        signal.average_rating, signal.total_reviews = rating_stats(session, signal_id=signal.id)
        predictor = session.query(Predictor).filter_by(wallet_address=signal.predictor_address).first()
        if predictor:
            predictor.average_rating, predictor.total_reviews = rating_stats(
                session, predictor_address=signal.predictor_address
            )
        session.flush()
        logger.info(f"Review created for signal {signal.content_id}: score {data.score}")
        return review_to_dict(review)


def _page(q, query: PageQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    total = q.count()
    rows = (
        q.order_by(Review.created_at.desc(), Review.token_id.desc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    return [review_to_dict(r) for r in rows], pagination(total, query.page, query.limit)


def get_signal_reviews(content_id: str, query: PageQuery):
    with session_scope() as session:
        return _page(session.query(Review).filter(Review.content_id == content_id), query)


def get_predictor_reviews(address: str, query: PageQuery):
    with session_scope() as session:
        return _page(session.query(Review).filter(Review.predictor_address == address.lower()), query)


def get_my_reviews(caller: str, query: PageQuery):
    with session_scope() as session:
        return _page(session.query(Review).filter(Review.buyer_address == caller.lower()), query)


def find_by_token_id(token_id: int) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        review = session.query(Review).filter_by(token_id=token_id).first()
        return review_to_dict(review) if review else None


def get_by_token_id(token_id: int) -> Dict[str, Any]:
    review = find_by_token_id(token_id)
    if review is None:
        raise ApiError.not_found(f"Review for tokenId '{token_id}' not found")
    return review


def review_exists(token_id: int) -> bool:
    return find_by_token_id(token_id) is not None
