"""
Storefront Sync - Platform Seed List
Static definitions of the selling platforms the dashboard can connect.
"""

from typing import Dict, List, Optional

from .models import Platform

DEFAULT_PLATFORM_NAME = "Platform"

PLATFORM_DISPLAY_NAMES: Dict[str, str] = {
    "etsy": "Etsy",
    "tiktok": "TikTok Shop",
    "facebook": "Facebook Marketplace",
    "square": "Square",
    "instagram": "Instagram Shop",
    "amazon": "Amazon",
    "shopify": "Shopify",
    "ebay": "eBay",
}

OAUTH_CREDENTIALS = ["accessToken", "refreshToken"]


def platform_display_name(platform_id: str) -> str:
    """Display name for a platform id, or a generic label for unknown ids."""
    return PLATFORM_DISPLAY_NAMES.get(platform_id, DEFAULT_PLATFORM_NAME)


def default_platforms() -> List[Platform]:
    """Fresh copies of the seed platform list, all disconnected."""
    return [
        Platform(
            id="etsy",
            name="Etsy",
            description="Sell handmade and vintage goods on the Etsy marketplace.",
            icon="🏪",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://www.etsy.com/oauth/connect",
            token_url="https://api.etsy.com/v3/public/oauth/token",
            scopes=["listings_r", "listings_w", "transactions_r"],
            refresh_credentials=True,
            inventory_sync=True,
        ),
        Platform(
            id="tiktok",
            name="TikTok Shop",
            description="Sell directly to TikTok users through the integrated shopping feature.",
            icon="📱",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://auth.tiktok-shops.com/oauth/authorize",
            token_url="https://auth.tiktok-shops.com/api/v2/token",
            scopes=["product.read", "product.write", "order.read"],
            refresh_credentials=True,
            webhook_support=True,
        ),
        Platform(
            id="facebook",
            name="Facebook Marketplace",
            description="List products on Facebook's marketplace for local and shipping sales.",
            icon="👥",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://www.facebook.com/v18.0/dialog/oauth",
            token_url="https://graph.facebook.com/v18.0/oauth/access_token",
            scopes=["catalog_management", "business_management"],
            refresh_credentials=True,
        ),
        Platform(
            id="square",
            name="Square",
            description="Sync inventory with your Square point-of-sale system and online store.",
            icon="🔲",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://connect.squareupsandbox.com/oauth2/authorize",
            token_url="https://connect.squareupsandbox.com/oauth2/token",
            scopes=["ITEMS_READ", "ITEMS_WRITE", "INVENTORY_READ", "INVENTORY_WRITE"],
            refresh_credentials=True,
            webhook_support=True,
            inventory_sync=True,
        ),
        Platform(
            id="instagram",
            name="Instagram Shop",
            description="Enable shopping features on your Instagram business profile.",
            icon="📸",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://api.instagram.com/oauth/authorize",
            token_url="https://api.instagram.com/oauth/access_token",
            scopes=["user_profile", "user_media"],
            refresh_credentials=True,
        ),
        Platform(
            id="amazon",
            name="Amazon",
            description="List products on Amazon's marketplace for global reach.",
            icon="📦",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://sellercentral.amazon.com/apps/authorize/consent",
            token_url="https://api.amazon.com/auth/o2/token",
            scopes=["product_listing", "order_read"],
            refresh_credentials=True,
        ),
        Platform(
            id="shopify",
            name="Shopify",
            description="Sync with your Shopify store to manage inventory across channels.",
            icon="🛒",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://accounts.shopify.com/oauth/authorize",
            token_url="https://accounts.shopify.com/oauth/token",
            scopes=["read_products", "write_products", "read_orders"],
            refresh_credentials=True,
            webhook_support=True,
            inventory_sync=True,
        ),
        Platform(
            id="ebay",
            name="eBay",
            description="List products on eBay's auction and fixed-price marketplace.",
            icon="🏷️",
            required_credentials=OAUTH_CREDENTIALS,
            auth_url="https://auth.ebay.com/oauth2/authorize",
            token_url="https://api.ebay.com/identity/v1/oauth2/token",
            scopes=[
                "https://api.ebay.com/oauth/api_scope/sell.inventory",
                "https://api.ebay.com/oauth/api_scope/sell.account",
            ],
            refresh_credentials=True,
        ),
    ]


def platforms_by_id(platforms: Optional[List[Platform]] = None) -> Dict[str, Platform]:
    """Index a platform list by id."""
    return {platform.id: platform for platform in (platforms or default_platforms())}
