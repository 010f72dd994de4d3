"""Inline keyboards and their callback data."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from photobot.models.domain import PendingActionKind

MY_CREDITS = "mycredits"
STATS = "stats"
DOWNLOAD_PREFIX = "download_"
GET_LINK_PREFIX = "getlink_"

# Callback patterns for handler registration
ADMIN_ACTIONS_PATTERN = "^(stats|broadcast|addcredit|remcredit)$"
DOWNLOAD_PATTERN = f"^{DOWNLOAD_PREFIX}(.+)$"
GET_LINK_PATTERN = f"^{GET_LINK_PREFIX}(.+)$"


def my_credits_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("💳 My credits", callback_data=MY_CREDITS)]])


def admin_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton("📊 Stats", callback_data=STATS)],
            [InlineKeyboardButton("📢 Broadcast", callback_data=PendingActionKind.BROADCAST.value)],
            [InlineKeyboardButton("➕ Add Credit", callback_data=PendingActionKind.ADD_CREDIT.value)],
            [
                InlineKeyboardButton(
                    "➖ Remove Credit", callback_data=PendingActionKind.REMOVE_CREDIT.value
                )
            ],
        ]
    )


def result_keyboard(link_token: str) -> InlineKeyboardMarkup:
    """Download / Get Link buttons for an enhanced photo."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("📥 Download", callback_data=f"{DOWNLOAD_PREFIX}{link_token}"),
                InlineKeyboardButton("🔗 Get Link", callback_data=f"{GET_LINK_PREFIX}{link_token}"),
            ]
        ]
    )


def open_link_keyboard(url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("🌐 Open in Browser", url=url)]])
