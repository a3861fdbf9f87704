from .auto_reply import AutoReply
from .conversation import Conversation
from .message import Message
from .widget import Widget

__all__ = ["AutoReply", "Conversation", "Message", "Widget"]
