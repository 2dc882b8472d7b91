from renolink.db.models.audit import AuditLog
from renolink.db.models.bid import Bid
from renolink.db.models.conversation import Conversation, Message
from renolink.db.models.project import Project, ProjectPrivateDetails
from renolink.db.models.transaction import CreditTransaction
from renolink.db.models.unlock import ProjectUnlock
from renolink.db.models.user import User

__all__ = [
    "AuditLog",
    "Bid",
    "Conversation",
    "CreditTransaction",
    "Message",
    "Project",
    "ProjectPrivateDetails",
    "ProjectUnlock",
    "User",
]
