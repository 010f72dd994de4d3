"""User-facing texts."""

WELCOME = (
    "👋 Hello {first_name}!\n\n"
    "You have {credits} credits ({daily_limit} free enhancements every day)\n\n"
    "Your referral link:\n{referral_link}"
)
REFERRAL_BONUS = "🎉 You referred a new user! +{bonus} credits!"
MY_CREDITS = "💳 Your credits: {credits}"

# Photo submission
NOT_REGISTERED = "❌ Send /start first"
OUT_OF_CREDITS = "🚫 You're out of credits!"
DAILY_QUOTA_EXHAUSTED = "⏳ Today's {daily_limit} free enhancements are used up!"
GENERIC_ERROR = "❌ Something went wrong, please try again!"
ENHANCED_CAPTION = "✨ Your enhanced photo is ready!"

# Result actions
DOWNLOAD_PREPARING = "📥 Preparing download..."
LINK_PREPARING = "🔗 Creating link..."
DIRECT_LINK = "🔗 Direct Link:\n{url}"
RESULT_EXPIRED = "⌛ This result has expired, please send the photo again."

# Admin console
PERMISSION_DENIED = "❌ No permission"
ADMIN_PANEL = "🛠 Admin Panel"
STATS = "📊 Total users: {count}"
BROADCAST_PROMPT = "✉️ Reply with the broadcast message."
BROADCAST_EMPTY = "❌ The broadcast message is empty."
BROADCAST_DONE = "✅ Broadcast sent! Delivered: {sent}, failed: {failed}"
CREDIT_PROMPT = "Reply with the user ID and credit amount.\nFormat: 123456789 {example}"
CREDIT_USAGE = "❌ Invalid format. Use: <user id> <amount>"
USER_NOT_FOUND = "❌ User not found."
CREDITS_ADDED = "✅ Added {amount} credits to {user_id}. New balance: {credits}"
CREDITS_REMOVED = "✅ Removed {amount} credits from {user_id}. New balance: {credits}"
