"""Admin dashboard: platform earnings and report moderation."""

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Predictor, Receipt, Report
from signalfriend.schemas import AdminReportsQuery, UpdateReportBody
from signalfriend.serializers import predictor_contact, report_to_dict, signal_summary
from signalfriend.utils import pagination, round_half_up

logger = logging.getLogger(__name__)

PLATFORM_FEES = {
    "PREDICTOR_JOIN_FEE": 20,
    "REFERRAL_BONUS": 5,
    "BUYER_ACCESS_FEE": 0.5,
    "COMMISSION_RATE": 0.05,
}


def get_platform_earnings() -> Dict[str, Any]:
    """
    Platform revenue derived from stored predictors and receipts.

    Joins earn the full fee, less the referral bonus when one was paid.
    Every purchase earns the buyer access fee plus commission on the price.
    """
    with session_scope() as session:
        total_predictors = session.query(func.count(Predictor.id)).scalar() or 0
        with_referral = (
            session.query(func.count(Predictor.id)).filter(Predictor.referral_paid.is_(True)).scalar() or 0
        )
        total_purchases, volume = session.query(
            func.count(Receipt.id), func.coalesce(func.sum(Receipt.price_usdt), 0.0)
        ).one()

    without_referral = total_predictors - with_referral
    volume = float(volume or 0)

    from_joins = (
        with_referral * (PLATFORM_FEES["PREDICTOR_JOIN_FEE"] - PLATFORM_FEES["REFERRAL_BONUS"])
        + without_referral * PLATFORM_FEES["PREDICTOR_JOIN_FEE"]
    )
    from_access_fees = total_purchases * PLATFORM_FEES["BUYER_ACCESS_FEE"]
    from_commissions = volume * PLATFORM_FEES["COMMISSION_RATE"]

    return {
        "fromPredictorJoins": round_half_up(from_joins, 2),
        "fromBuyerAccessFees": round_half_up(from_access_fees, 2),
        "fromCommissions": round_half_up(from_commissions, 2),
        "total": round_half_up(from_joins + from_access_fees + from_commissions, 2),
        "details": {
            "totalPredictors": total_predictors,
            "predictorsWithReferral": with_referral,
            "predictorsWithoutReferral": without_referral,
            "totalPurchases": int(total_purchases or 0),
            "totalSignalVolume": round_half_up(volume, 2),
        },
    }


def _admin_report(report: Report, predictor: Predictor = None) -> Dict[str, Any]:
    data = report_to_dict(report, include_admin_notes=True)
    data["signal"] = signal_summary(report.signal)
    data["predictor"] = predictor_contact(predictor)
    return data


def list_reports(query: AdminReportsQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    with session_scope() as session:
        q = session.query(Report)
        if query.status:
            q = q.filter(Report.status == query.status)
        if query.predictor_address:
            q = q.filter(Report.predictor_address == query.predictor_address.lower())

        total = q.count()
        reports = (
            q.order_by(Report.created_at.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )
        addresses = {r.predictor_address for r in reports}
        predictors = (
            {
                p.wallet_address: p
                for p in session.query(Predictor).filter(Predictor.wallet_address.in_(addresses)).all()
            }
            if addresses
            else {}
        )
        items = [_admin_report(r, predictors.get(r.predictor_address)) for r in reports]
        return items, pagination(total, query.page, query.limit)


def _require_report(session, report_id: str) -> Report:
    report = session.get(Report, report_id)
    if not report:
        raise ApiError.not_found(f"Report with ID '{report_id}' not found")
    return report


def get_report(report_id: str) -> Dict[str, Any]:
    with session_scope() as session:
        report = _require_report(session, report_id)
        predictor = session.query(Predictor).filter_by(wallet_address=report.predictor_address).first()
        return _admin_report(report, predictor)


def update_report_status(report_id: str, data: UpdateReportBody) -> Dict[str, Any]:
    with session_scope() as session:
        report = _require_report(session, report_id)
        report.status = data.status
        if data.admin_notes is not None:
            report.admin_notes = data.admin_notes
        session.flush()
        predictor = session.query(Predictor).filter_by(wallet_address=report.predictor_address).first()
        logger.info(f"Report {report_id} -> {data.status}")
        return _admin_report(report, predictor)
