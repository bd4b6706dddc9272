# importing this package registers every table on BaseModel.metadata
from opschat.infrastructure.database.models.role_model import RoleModel
from opschat.infrastructure.database.models.client_model import ClientModel
from opschat.infrastructure.database.models.user_model import UserModel
from opschat.infrastructure.database.models.team_model import (
    ClientTeamMemberModel,
    TeamModel,
    TemplateTeamMemberModel,
)
from opschat.infrastructure.database.models.conversation_model import ConversationModel
from opschat.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)
from opschat.infrastructure.database.models.message_model import MessageModel

__all__ = [
    "RoleModel",
    "ClientModel",
    "UserModel",
    "TeamModel",
    "ClientTeamMemberModel",
    "TemplateTeamMemberModel",
    "ConversationModel",
    "ConversationParticipantModel",
    "MessageModel",
]
