"""
Alchemy webhook ingestion.

Verifies the HMAC signature of inbound webhooks, normalises the GRAPHQL and
ADDRESS_ACTIVITY payload shapes into plain event logs, and applies the
marketplace contract events to the database exactly once per
(transaction, topic) pair.
"""

import hashlib
import hmac
import logging
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from eth_abi import decode
from eth_utils import decode_hex, from_wei
from sqlalchemy.exc import IntegrityError

from signalfriend.config import is_production
from signalfriend.contracts import TOPIC_TO_EVENT, ZERO_ADDRESS
from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.metrics import webhook_events
from signalfriend.models import ProcessedWebhookEvent
from signalfriend.schemas import WebhookPayload
from signalfriend.services import predictors, receipts
from signalfriend.utils import bytes32_to_uuid, parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)

# Replay window for webhook timestamps
MAX_WEBHOOK_AGE_MS = 5 * 60 * 1000
MAX_CLOCK_SKEW_MS = 60 * 1000
PROCESSED_EVENT_RETENTION_DAYS = 30


# ============================================================================
# Signature and freshness
# ============================================================================


def verify_signature(body: bytes, signature: Optional[str], cfg: Mapping[str, Any]) -> bool:
    """
    Check the ``X-Alchemy-Signature`` header against the raw request body.

    Args:
        body: Raw request body, exactly as received
        signature: Hex HMAC-SHA256 from the header (may be empty)
        cfg: Application config

    Returns:
        True if the webhook may be processed
    """
    signing_key = cfg.get("ALCHEMY_SIGNING_KEY")
    if signing_key:
        expected = hmac.new(signing_key.encode("utf-8"), body, hashlib.sha256).hexdigest()
        valid = hmac.compare_digest(expected, (signature or "").strip().lower())
        if not valid:
            logger.warning("Webhook signature mismatch - possible spoofing attempt")
        return valid

    if not is_production(cfg) and cfg.get("SKIP_WEBHOOK_SIGNATURE"):
        logger.warning("⚠️  SKIP_WEBHOOK_SIGNATURE=true - bypassing signature verification")
        return True

    logger.error("ALCHEMY_SIGNING_KEY not set and SKIP_WEBHOOK_SIGNATURE is off - rejecting webhook")
    return False


def validate_timestamp(created_at: str, now=None) -> Tuple[bool, Optional[int]]:
    """
    Reject stale or far-future webhooks.

    Returns:
        (is_valid, age in milliseconds or None when unparseable)
    """
    try:
        sent_at = parse_iso_datetime(created_at)
    except (TypeError, ValueError):
        logger.warning(f"Webhook timestamp unparseable: {created_at!r}")
        return False, None

    age_ms = int(((now or utc_now()) - sent_at).total_seconds() * 1000)
    valid = -MAX_CLOCK_SKEW_MS < age_ms < MAX_WEBHOOK_AGE_MS
    if not valid:
        logger.warning(f"Webhook timestamp validation failed: createdAt={created_at} ageMs={age_ms}")
    return valid, age_ms


# ============================================================================
# Idempotency ledger
# ============================================================================


def event_key(tx_hash: str, topic0: str) -> str:
    return f"{tx_hash.lower()}-{topic0.lower()}"


def is_event_processed(tx_hash: str, topic0: str) -> bool:
    with session_scope() as session:
        return (
            session.query(ProcessedWebhookEvent.id).filter_by(event_key=event_key(tx_hash, topic0)).first()
            is not None
        )


def mark_event_processed(tx_hash: str, topic0: str, event_type: str, webhook_id: str, created_at) -> None:
    """Record a handled event. A concurrent insert of the same key is ignored."""
    key = event_key(tx_hash, topic0)
    try:
        with session_scope() as session:
            session.add(
                ProcessedWebhookEvent(
                    event_key=key,
                    transaction_hash=tx_hash.lower(),
                    event_type=event_type,
                    webhook_id=webhook_id,
                    webhook_created_at=created_at,
                    processed_at=utc_now(),
                )
            )
    except IntegrityError:
        logger.debug(f"Event {key} already marked as processed")


def purge_processed_events(retention_days: int = PROCESSED_EVENT_RETENTION_DAYS, now=None) -> int:
    """Delete ledger rows older than the retention window; returns the count."""
    cutoff = (now or utc_now()) - timedelta(days=retention_days)
    with session_scope() as session:
        deleted = (
            session.query(ProcessedWebhookEvent)
            .filter(ProcessedWebhookEvent.processed_at < cutoff)
            .delete(synchronize_session=False)
        )
    if deleted:
        logger.info(f"Purged {deleted} processed webhook events older than {retention_days} days")
    return deleted


# ============================================================================
# Event decoding and handlers
# ============================================================================


def _topic_address(topic: str) -> str:
    return decode(["address"], decode_hex(topic))[0].lower()


def _topic_uint(topic: str) -> int:
    return decode(["uint256"], decode_hex(topic))[0]


def _data(log: Dict[str, Any], types: List[str]) -> tuple:
    return decode(types, decode_hex(log["data"]))


def _create_predictor(wallet: str, token_id: int, referrer: Optional[str], referral_paid: bool, tx_hash: str) -> None:
    try:
        predictors.create_predictor_from_event(
            wallet_address=wallet,
            token_id=token_id,
            joined_at=utc_now(),
            referred_by=referrer if referrer and referrer != ZERO_ADDRESS else None,
            referral_paid=referral_paid,
        )
        logger.info(f"Predictor {wallet} (token #{token_id}) created from {tx_hash}")
    except ApiError as e:
        if e.status_code == 409:
            logger.info(f"Predictor {wallet} already exists, skipping (tx {tx_hash})")
            return
        raise


def handle_predictor_joined(log: Dict[str, Any]) -> None:
    topics = log["topics"]
    predictor = _topic_address(topics[1])
    referrer = _topic_address(topics[2])
    token_id, referral_paid = _data(log, ["uint256", "bool"])
    logger.info(
        f"PredictorJoined: predictor={predictor} referrer={referrer} tokenId={token_id} "
        f"referralPaid={referral_paid} tx={log['transactionHash']}"
    )
    _create_predictor(predictor, int(token_id), referrer, bool(referral_paid), log["transactionHash"])


def handle_signal_purchased(log: Dict[str, Any]) -> None:
    topics = log["topics"]
    buyer = _topic_address(topics[1])
    predictor = _topic_address(topics[2])
    receipt_token_id = _topic_uint(topics[3])
    content_identifier, signal_price, _total_cost = _data(log, ["bytes32", "uint256", "uint256"])

    content_id = bytes32_to_uuid("0x" + content_identifier.hex())
    # USDT on BNB Chain has 18 decimals
    price_usdt = float(from_wei(signal_price, "ether"))

    logger.info(
        f"SignalPurchased: buyer={buyer} tokenId={receipt_token_id} contentId={content_id} "
        f"price={price_usdt} tx={log['transactionHash']}"
    )
    try:
        receipts.create_receipt_from_event(
            token_id=int(receipt_token_id),
            content_id=content_id,
            buyer_address=buyer,
            predictor_address=predictor,
            price_usdt=price_usdt,
            transaction_hash=log["transactionHash"],
            purchased_at=utc_now(),
        )
    except ApiError as e:
        if e.status_code == 404:
            logger.warning(f"Signal not found for purchase event {log['transactionHash']}: {e.message}")
        raise


def handle_predictor_blacklisted(log: Dict[str, Any]) -> None:
    predictor = _topic_address(log["topics"][1])
    (status,) = _data(log, ["bool"])
    try:
        predictors.update_blacklist_status(predictor, bool(status))
    except ApiError as e:
        if e.status_code == 404:
            logger.warning(f"Blacklist event for unknown predictor {predictor} (tx {log['transactionHash']})")
        raise
    logger.info(f"PredictorBlacklisted: {predictor} -> {bool(status)}")


def handle_predictor_nft_minted(log: Dict[str, Any]) -> None:
    """Owner mints bypass the join flow, so they create the predictor here."""
    topics = log["topics"]
    predictor = _topic_address(topics[1])
    token_id = _topic_uint(topics[2])
    (is_owner_mint,) = _data(log, ["bool"])
    if not is_owner_mint:
        logger.debug(f"PredictorNFTMinted for {predictor} via join flow; handled by PredictorJoined")
        return
    _create_predictor(predictor, int(token_id), None, False, log["transactionHash"])


EVENT_HANDLERS = {
    "PredictorJoined": handle_predictor_joined,
    "SignalPurchased": handle_signal_purchased,
    "PredictorBlacklisted": handle_predictor_blacklisted,
    "PredictorNFTMinted": handle_predictor_nft_minted,
}


def process_event_log(log: Dict[str, Any], topic0: str) -> Optional[str]:
    """Dispatch a normalised log by topic0; returns the event name or None if unhandled."""
    event_type = TOPIC_TO_EVENT.get(topic0.lower())
    if event_type is None:
        logger.debug(f"Unhandled event topic {topic0} in tx {log['transactionHash']}")
        return None
    EVENT_HANDLERS[event_type](log)
    return event_type


# ============================================================================
# Payload processing
# ============================================================================


def _graphql_logs(payload: WebhookPayload) -> List[Dict[str, Any]]:
    block = payload.graphql().data.block
    return [
        {
            "address": log.account.address,
            "topics": log.topics,
            "data": log.data,
            "transactionHash": log.transaction.hash,
            "blockNumber": block.number,
        }
        for log in block.logs
    ]


def _address_activity_logs(payload: WebhookPayload) -> List[Dict[str, Any]]:
    logs = []
    for activity in payload.address_activity().activity:
        if activity.log is None:
            continue
        logs.append(
            {
                "address": activity.log.address,
                "topics": activity.log.topics,
                "data": activity.log.data,
                "transactionHash": activity.hash,
                "blockNumber": activity.block_num,
            }
        )
    return logs


def process_webhook(payload: WebhookPayload, now=None) -> Dict[str, int]:
    """
    Apply every contract event carried by a validated webhook payload.

    Events already in the ledger are skipped. A failure in one event is
    logged and does not stop the others; failed events stay unmarked so a
    redelivery can apply them.

    Returns:
        ``{"processed": n, "skipped": m}``
    """
    result = {"processed": 0, "skipped": 0}

    if payload.type == "GRAPHQL":
        extract = _graphql_logs
    elif payload.type == "ADDRESS_ACTIVITY":
        extract = _address_activity_logs
    else:
        logger.info(f"Ignoring {payload.type} webhook {payload.webhook_id}")
        return result

    valid, age_ms = validate_timestamp(payload.created_at, now=now)
    if not valid:
        logger.warning(f"Rejecting stale {payload.type} webhook {payload.webhook_id} (ageMs={age_ms})")
        return result

    created_at = parse_iso_datetime(payload.created_at)
    logs = extract(payload)
    logger.info(f"Processing {payload.type} webhook {payload.webhook_id}: {len(logs)} logs, ageMs={age_ms}")

    for log in logs:
        topics = log["topics"]
        if not topics:
            continue
        topic0 = topics[0]
        tx_hash = log["transactionHash"]
        event_name = TOPIC_TO_EVENT.get(topic0.lower(), "unknown")

        if is_event_processed(tx_hash, topic0):
            logger.debug(f"Skipping already processed event {event_key(tx_hash, topic0)}")
            webhook_events.labels(event_type=event_name, outcome="skipped").inc()
            result["skipped"] += 1
            continue

        try:
            event_type = process_event_log(log, topic0)
        except Exception as e:
            logger.error(f"Error processing {event_name} event in tx {tx_hash}: {e}", exc_info=True)
            webhook_events.labels(event_type=event_name, outcome="failed").inc()
            continue

        if event_type:
            mark_event_processed(tx_hash, topic0, event_type, payload.webhook_id, created_at)
            webhook_events.labels(event_type=event_type, outcome="processed").inc()
            result["processed"] += 1

    logger.info(
        f"{payload.type} webhook {payload.webhook_id} complete: "
        f"processed={result['processed']} skipped={result['skipped']}"
    )
    return result
