"""Request/response bridge over the message bus.

- BridgeClient: publish an operation and await its correlated reply
- Dispatcher: consume operations, execute them, deliver replies
"""

from amity.bridge.client import BridgeClient
from amity.bridge.dispatcher import DispatchOutcome, Dispatcher, DispatchState, recover_key

__all__ = [
    "BridgeClient",
    "DispatchOutcome",
    "DispatchState",
    "Dispatcher",
    "recover_key",
]
