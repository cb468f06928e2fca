"""Constants for message handling.

Centralizes user-facing text and magic numbers for maintainability.
"""

# Placeholder posted on admission, edited in place with the answer
THINKING_MESSAGE_TEXT = "🤔 Thinking..."

# Sent when the backend answered with an empty body
EMPTY_RESPONSE_TEXT = "I'm sorry, I couldn't generate a response. Please try again."

# Pointer sent from DMs when the bot only serves one channel
REDIRECT_MESSAGE_TEMPLATE = (
    "👋 I only answer questions in <#{channel}>. Please ask me there!"
)

# Conversation and thread limits
MAX_THREAD_MESSAGES = 50  # Most recent thread messages scanned for a conversation ID
MAX_THREAD_PAGES = 5  # Upper bound on conversations.replies pages per lookup
