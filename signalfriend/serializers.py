"""Model to JSON conversion.

Public views never include protected signal content or predictor contact
handles. Those are only added for the owner or an admin.
"""

from typing import Any, Dict, Optional

from signalfriend.models import Category, Dispute, Predictor, Receipt, Report, Review, Signal
from signalfriend.utils import ensure_aware, isoformat, utc_now


def category_to_dict(category: Category) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "mainGroup": category.main_group,
        "description": category.description or "",
        "icon": category.icon or "",
        "isActive": category.is_active,
        "sortOrder": category.sort_order,
        "createdAt": isoformat(category.created_at),
        "updatedAt": isoformat(category.updated_at),
    }


def category_summary(category: Optional[Category]) -> Optional[Dict[str, Any]]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "icon": category.icon or "",
        "mainGroup": category.main_group,
    }


def predictor_to_dict(predictor: Predictor, private: bool = False) -> Dict[str, Any]:
    """
    Serialize a predictor profile.

    Args:
        predictor: Predictor row
        private: Include contact handles and verification bookkeeping
            (owner and admin views only)
    """
    social_links = {"twitter": predictor.twitter or ""}
    data = {
        "id": predictor.id,
        "walletAddress": predictor.wallet_address,
        "tokenId": predictor.token_id,
        "displayName": predictor.display_name,
        "displayNameChanged": predictor.display_name_changed,
        "bio": predictor.bio or "",
        "avatarUrl": predictor.avatar_url or "",
        "socialLinks": social_links,
        "categoryIds": [c.id for c in predictor.categories],
        "categories": [category_summary(c) for c in predictor.categories],
        "totalSignals": predictor.total_signals,
        "totalSales": predictor.total_sales,
        "totalEarnings": predictor.total_earnings,
        "averageRating": predictor.average_rating,
        "totalReviews": predictor.total_reviews,
        "isBlacklisted": predictor.is_blacklisted,
        "isVerified": predictor.is_verified,
        "joinedAt": isoformat(predictor.joined_at),
        "createdAt": isoformat(predictor.created_at),
        "updatedAt": isoformat(predictor.updated_at),
    }
    if private:
        social_links["telegram"] = predictor.telegram or ""
        social_links["discord"] = predictor.discord or ""
        data.update(
            {
                "preferredContact": predictor.preferred_contact,
                "verificationStatus": predictor.verification_status,
                "salesAtLastApplication": predictor.sales_at_last_application,
                "earningsAtLastApplication": predictor.earnings_at_last_application,
                "verificationAppliedAt": isoformat(predictor.verification_applied_at),
                "referredBy": predictor.referred_by,
                "referralPaid": predictor.referral_paid,
            }
        )
    return data


def predictor_summary(predictor: Optional[Predictor]) -> Optional[Dict[str, Any]]:
    if predictor is None:
        return None
    return {
        "walletAddress": predictor.wallet_address,
        "displayName": predictor.display_name,
        "avatarUrl": predictor.avatar_url or "",
        "isVerified": predictor.is_verified,
        "averageRating": predictor.average_rating,
        "totalSales": predictor.total_sales,
    }


def predictor_contact(predictor: Optional[Predictor]) -> Optional[Dict[str, Any]]:
    """Admin-facing summary with contact handles."""
    if predictor is None:
        return None
    return {
        "displayName": predictor.display_name,
        "walletAddress": predictor.wallet_address,
        "preferredContact": predictor.preferred_contact,
        "socialLinks": {
            "twitter": predictor.twitter or "",
            "telegram": predictor.telegram or "",
            "discord": predictor.discord or "",
        },
        "totalSales": predictor.total_sales,
        "totalSignals": predictor.total_signals,
        "isBlacklisted": predictor.is_blacklisted,
    }


def signal_is_expired(signal: Signal) -> bool:
    return ensure_aware(signal.expires_at) <= utc_now()


def signal_to_dict(signal: Signal, include_content: bool = False) -> Dict[str, Any]:
    data = {
        "id": signal.id,
        "contentId": signal.content_id,
        "predictorId": signal.predictor_id,
        "predictorAddress": signal.predictor_address,
        "predictor": predictor_summary(signal.predictor),
        "title": signal.title,
        "description": signal.description,
        "categoryId": signal.category_id,
        "category": category_summary(signal.category),
        "priceUsdt": signal.price_usdt,
        "expiresAt": isoformat(signal.expires_at),
        "isExpired": signal_is_expired(signal),
        "riskLevel": signal.risk_level,
        "potentialReward": signal.potential_reward,
        "totalSales": signal.total_sales,
        "averageRating": signal.average_rating,
        "totalReviews": signal.total_reviews,
        "isActive": signal.is_active,
        "createdAt": isoformat(signal.created_at),
        "updatedAt": isoformat(signal.updated_at),
    }
    if include_content:
        data["content"] = signal.content
    return data


def signal_summary(signal: Optional[Signal]) -> Optional[Dict[str, Any]]:
    if signal is None:
        return None
    return {
        "contentId": signal.content_id,
        "title": signal.title,
        "priceUsdt": signal.price_usdt,
        "predictorAddress": signal.predictor_address,
        "category": category_summary(signal.category),
        "riskLevel": signal.risk_level,
        "potentialReward": signal.potential_reward,
        "expiresAt": isoformat(signal.expires_at),
        "isActive": signal.is_active,
    }


def receipt_to_dict(receipt: Receipt, with_signal: bool = True) -> Dict[str, Any]:
    data = {
        "id": receipt.id,
        "tokenId": receipt.token_id,
        "contentId": receipt.content_id,
        "buyerAddress": receipt.buyer_address,
        "predictorAddress": receipt.predictor_address,
        "priceUsdt": receipt.price_usdt,
        "purchasedAt": isoformat(receipt.purchased_at),
        "transactionHash": receipt.transaction_hash,
        "createdAt": isoformat(receipt.created_at),
    }
    if with_signal:
        data["signal"] = signal_summary(receipt.signal)
    return data


def review_to_dict(review: Review) -> Dict[str, Any]:
    return {
        "id": review.id,
        "tokenId": review.token_id,
        "contentId": review.content_id,
        "buyerAddress": review.buyer_address,
        "predictorAddress": review.predictor_address,
        "score": review.score,
        "reviewText": review.review_text or "",
        "createdAt": isoformat(review.created_at),
    }


def report_to_dict(report: Report, include_admin_notes: bool = False) -> Dict[str, Any]:
    data = {
        "id": report.id,
        "tokenId": report.token_id,
        "contentId": report.content_id,
        "reporterAddress": report.reporter_address,
        "predictorAddress": report.predictor_address,
        "reason": report.reason,
        "description": report.description or "",
        "status": report.status,
        "createdAt": isoformat(report.created_at),
        "updatedAt": isoformat(report.updated_at),
    }
    if include_admin_notes:
        data["adminNotes"] = report.admin_notes or ""
    return data


def dispute_to_dict(dispute: Dispute, predictor: Optional[Predictor] = None) -> Dict[str, Any]:
    data = {
        "id": dispute.id,
        "predictorAddress": dispute.predictor_address,
        "status": dispute.status,
        "adminNotes": dispute.admin_notes or "",
        "resolvedAt": isoformat(dispute.resolved_at),
        "createdAt": isoformat(dispute.created_at),
        "updatedAt": isoformat(dispute.updated_at),
    }
    if predictor is not None:
        data["predictor"] = predictor_contact(predictor)
    return data
