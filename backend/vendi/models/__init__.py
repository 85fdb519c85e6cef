from vendi.models.conversation_state import ConversationStateRecord
from vendi.models.action_history import ActionHistory
from vendi.models.product import Product
from vendi.models.message import ConversationMessage

__all__ = ["ConversationStateRecord", "ActionHistory", "Product", "ConversationMessage"]
