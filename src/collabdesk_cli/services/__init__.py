"""Services layer: entity stores, push channels, mutations and sessions."""

from .entity_store import EntityStore, MutationMode
from .identity_resolver import resolve_users
from .message_store import MessageStore
from .mutation_coordinator import OptimisticMutationCoordinator
from .project_store import ProjectStore
from .subscription_manager import Channel, ChannelState, SubscriptionManager
from .task_store import TaskStore
from .user_store import UserStore
from .workspace import Workspace, build_workspace

__all__ = [
    "EntityStore",
    "MutationMode",
    "ProjectStore",
    "TaskStore",
    "MessageStore",
    "UserStore",
    "resolve_users",
    "SubscriptionManager",
    "Channel",
    "ChannelState",
    "OptimisticMutationCoordinator",
    "Workspace",
    "build_workspace",
]
