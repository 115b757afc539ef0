"""Sign-In with Ethereum: nonce issuance and message verification."""

import logging
from typing import Any, Dict, Mapping, Optional

from siwe import SiweMessage, VerificationError, generate_nonce

from signalfriend import nonce_store
from signalfriend.audit_logger import get_audit_logger
from signalfriend.errors import ApiError
from signalfriend.services.predictors import find_by_address
from signalfriend.tokens import issue_token

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


def issue_nonce(address: str, ip_address: Optional[str] = None) -> str:
    """Generate and store a fresh single-use nonce for the wallet."""
    nonce = generate_nonce()
    nonce_store.save_nonce(address, nonce)
    audit_logger.log_event("auth.nonce_issued", address=address.lower(), ip=ip_address)
    return nonce


def _fail(reason: str, error: ApiError, address: Optional[str], ip_address: Optional[str]) -> ApiError:
    audit_logger.log_event("auth.verify_failed", reason=reason, address=address, ip=ip_address)
    return error


def verify_login(message: str, signature: str, cfg: Mapping[str, Any], ip_address: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify a signed SIWE message and issue a session token.

    Args:
        message: EIP-4361 message text
        signature: Wallet signature over the message
        cfg: Application config (chain id, JWT settings)
        ip_address: Caller IP for the audit trail

    Returns:
        ``{"token", "predictor"}`` where predictor is the caller's full
        profile, or None if the wallet is not a predictor

    Raises:
        ApiError: 400 for an unparseable message or wrong chain, 401 for a
            missing, expired or mismatched nonce or a bad signature
    """
    try:
        siwe_message = SiweMessage.from_message(message=message)
    except ValueError as e:
        logger.debug(f"SIWE parse failed: {e}")
        raise _fail("invalid_message", ApiError.bad_request("Invalid SIWE message"), None, ip_address)

    address = siwe_message.address.lower()

    stored = nonce_store.get_nonce(address)
    if not stored:
        raise _fail(
            "nonce_missing",
            ApiError.unauthorized("No nonce found for this address. Request a new nonce."),
            address,
            ip_address,
        )
    if nonce_store.is_expired(stored):
        nonce_store.delete_nonce(address)
        raise _fail("nonce_expired", ApiError.unauthorized("Nonce expired. Request a new nonce."), address, ip_address)
    if siwe_message.nonce != stored["nonce"]:
        raise _fail("nonce_mismatch", ApiError.unauthorized("Invalid nonce"), address, ip_address)

    try:
        siwe_message.verify(signature=signature, nonce=stored["nonce"])
    except (VerificationError, ValueError) as e:
        logger.info(f"SIWE signature rejected for {address}: {type(e).__name__}")
        raise _fail("invalid_signature", ApiError.unauthorized("Invalid signature"), address, ip_address)

    nonce_store.delete_nonce(address)

    expected_chain = int(cfg["CHAIN_ID"])
    if int(siwe_message.chain_id) != expected_chain:
        raise _fail(
            "wrong_chain",
            ApiError.bad_request(f"Invalid chain ID. Expected {expected_chain}"),
            address,
            ip_address,
        )

    token = issue_token(address, cfg)
    audit_logger.log_auth_attempt(address, "siwe", True, ip_address)
    audit_logger.log_token_issued(address, expires_in=cfg["JWT_EXPIRES_IN"])
    audit_logger.log_event("auth.verify_success", address=address, ip=ip_address)

    return {"token": token, "predictor": find_by_address(address, private=True)}
