from .memory_store import InMemoryStateStore
from .mock_provider import FakeSnapshotProvider
from .recording_notifier import RecordingNotifier

__all__ = ["FakeSnapshotProvider", "InMemoryStateStore", "RecordingNotifier"]

SUBJECT_ID = "subject-1"
OWN_SELLER = "A1OWNSELLER"
OTHER_OWN_SELLER = "A2OWNSELLER"
COMPETITOR = "A9COMPETITOR"
