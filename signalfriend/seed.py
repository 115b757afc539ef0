"""Default category catalogue, seeded on first start."""

import logging

from signalfriend.database import session_scope
from signalfriend.models import Category

logger = logging.getLogger(__name__)

CRYPTO = "Crypto"
TRADITIONAL_FINANCE = "Traditional Finance"
MACRO_OTHER = "Macro / Other"

# (main_group, name, slug, description, icon, sort_order)
DEFAULT_CATEGORIES = [
    (CRYPTO, "Bitcoin", "crypto-bitcoin", "Bitcoin (BTC) trading signals", "₿", 1),
    (CRYPTO, "Ethereum", "crypto-ethereum", "Ethereum (ETH) trading signals", "Ξ", 2),
    (CRYPTO, "Altcoins", "crypto-altcoins", "Alternative cryptocurrency signals", "🪙", 3),
    (CRYPTO, "DeFi", "crypto-defi", "Decentralized finance signals", "🏦", 4),
    (CRYPTO, "NFTs", "crypto-nfts", "NFT market signals", "🖼️", 5),
    (CRYPTO, "Layer 1/2", "crypto-layer-1-2", "Layer 1 and Layer 2 blockchain signals", "⛓️", 6),
    (CRYPTO, "Meme Coins", "crypto-meme-coins", "Meme coin trading signals", "🐕", 7),
    (CRYPTO, "Futures/Perpetuals", "crypto-futures", "Crypto futures and perpetual signals", "📊", 8),
    (CRYPTO, "Other", "crypto-other", "Other crypto signals", "💎", 99),
    (TRADITIONAL_FINANCE, "US Stocks - Tech", "tradfi-stocks-tech", "US technology stock signals", "💻", 1),
    (TRADITIONAL_FINANCE, "US Stocks - General", "tradfi-stocks-general", "General US stock signals", "📈", 2),
    (TRADITIONAL_FINANCE, "Forex - Majors", "tradfi-forex-majors", "Major forex pair signals", "💱", 3),
    (TRADITIONAL_FINANCE, "Commodities - Metals", "tradfi-commodities-metals", "Precious metals signals", "🥇", 4),
    (TRADITIONAL_FINANCE, "Commodities - Energy", "tradfi-commodities-energy", "Energy commodity signals", "🛢️", 5),
    (TRADITIONAL_FINANCE, "Other", "tradfi-other", "Other traditional finance signals", "💵", 99),
    (MACRO_OTHER, "Economic Data", "macro-economic-data", "Economic data predictions", "📉", 1),
    (MACRO_OTHER, "Geopolitical Events", "macro-geopolitical", "Geopolitical event predictions", "🌍", 2),
    (MACRO_OTHER, "Sports", "macro-sports", "Sports predictions", "⚽", 3),
    (MACRO_OTHER, "Other", "macro-other", "Other predictions and signals", "📊", 99),
]


def seed_categories(force: bool = False) -> int:
    """
    Insert the default categories.

    Args:
        force: Insert missing slugs even when the table already has rows

    Returns:
        Number of categories created
    """
    created = 0
    with session_scope() as session:
        if not force and session.query(Category).first() is not None:
            logger.debug("Categories already present; skipping seed")
            return 0

        existing = {slug for (slug,) in session.query(Category.slug).all()}
        for main_group, name, slug, description, icon, sort_order in DEFAULT_CATEGORIES:
            if slug in existing:
                continue
            session.add(
                Category(
                    main_group=main_group,
                    name=name,
                    slug=slug,
                    description=description,
                    icon=icon,
                    sort_order=sort_order,
                )
            )
            created += 1

    if created:
        logger.info(f"✅ Seeded {created} default categories")
    return created
