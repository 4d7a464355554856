from .contracts import BucketTarget, RenameReport, SyncReport
from .service import BucketRenamer, BucketSyncer, rename_targets

__all__ = [
    "BucketTarget",
    "RenameReport",
    "SyncReport",
    "BucketRenamer",
    "BucketSyncer",
    "rename_targets",
]
