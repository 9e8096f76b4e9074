"""Backend synchronization module.

Provides:
- Pull/push of enrollment progress
- Quiz submission and history retrieval
- Background delivery of progress snapshots
"""

from .client import ProgressSyncClient
from .pusher import ProgressPusher
from .schemas import EnrollmentProgress


__all__ = ["EnrollmentProgress", "ProgressPusher", "ProgressSyncClient"]
