"""Course viewer module.

Provides:
- Viewer sessions (load sequence and user actions of one open course)
- The session registry
- HTTP routes for a browser UI
"""

from .session import CourseViewerSession, SessionRegistry, learner_key_for


__all__ = ["CourseViewerSession", "SessionRegistry", "learner_key_for"]
