"""Commentary presentation for adroast.

Public API:
    CommentaryScheduler -- Sentence queue, bubble release and expiry
    split_sentences -- Sentence splitter used by the scheduler
"""

from adroast.presentation.scheduler import CommentaryScheduler, split_sentences

__all__ = ["CommentaryScheduler", "split_sentences"]
