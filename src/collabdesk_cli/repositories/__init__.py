"""Backend interfaces for CollabDesk.

This package contains abstract base classes (ABCs) that define the contracts
of the remote collaborators. These are the "Ports" in the Hexagonal Architecture.

Implementations (Adapters) are in:
- collabdesk_cli.adapters.sqlite (local workspace)
- collabdesk_cli.adapters.rest_api and collabdesk_cli.adapters.polling (remote API)
"""

from .repository import (
    Backend,
    IdentityProvider,
    PushTransport,
    RemoteStore,
    Row,
    Subscription,
)

__all__ = [
    "RemoteStore",
    "PushTransport",
    "Subscription",
    "IdentityProvider",
    "Backend",
    "Row",
]
