"""Branch-aware reconciliation and auto-hide."""

from .auto_hide import auto_hide_old_messages
from .reconciliation import BranchReconciler, prune_stale_memories, unhide_messages_for_branch
