class WidgetChatError(Exception):
    """Base error for widget chat operations."""


class ValidationError(WidgetChatError):
    """Input rejected before anything was stored."""


class NotFoundError(WidgetChatError):
    """Referenced widget, chat, rule or session does not exist."""
