"""
Icon identifiers.

Wallets and categories store an icon identifier (e.g. "credit-card").
Screens resolve it to a glyph here. Unknown identifiers render as the
wallet glyph.
"""

FALLBACK_ICON = "wallet"

ICON_GLYPHS: dict[str, str] = {
    # Wallets
    "wallet": "👛",
    "credit-card": "💳",
    "banknote": "💵",
    "building-2": "🏢",
    "piggy-bank": "🐷",
    "landmark": "🏦",
    "coins": "🪙",
    "receipt": "🧾",
    "briefcase": "💼",
    "shopping-bag": "🛍️",
    # Categories
    "utensils": "🍽️",
    "car": "🚗",
    "film": "🎬",
    "heart-pulse": "❤️",
    "graduation-cap": "🎓",
    "shopping-cart": "🛒",
    "sparkles": "✨",
    "more-horizontal": "⋯",
    "laptop": "💻",
    "gift": "🎁",
    "trending-up": "📈",
    "rotate-ccw": "↩️",
    "home": "🏠",
    "plane": "✈️",
    "gamepad-2": "🎮",
    "dumbbell": "🏋️",
    "music": "🎵",
    "coffee": "☕",
    "book": "📖",
}

WALLET_ICONS = [
    "wallet", "credit-card", "banknote", "building-2", "piggy-bank",
    "landmark", "coins", "receipt", "briefcase", "shopping-bag",
]

CATEGORY_ICONS = [
    "utensils", "car", "shopping-bag", "film", "heart-pulse", "receipt",
    "graduation-cap", "shopping-cart", "sparkles", "more-horizontal",
    "briefcase", "laptop", "gift", "trending-up", "rotate-ccw",
    "home", "plane", "gamepad-2", "dumbbell", "music", "coffee", "book",
]

CATEGORY_COLORS = [
    "#E57373", "#64B5F6", "#BA68C8", "#FFB74D", "#81C784", "#90A4AE",
    "#4DB6AC", "#78909C", "#4CAF50", "#7986CB", "#F06292", "#9575CD",
    "#FF6B35", "#00BCD4", "#8BC34A", "#FFC107",
]


def resolve_icon(name: str) -> str:
    return ICON_GLYPHS.get(name or "", ICON_GLYPHS[FALLBACK_ICON])
