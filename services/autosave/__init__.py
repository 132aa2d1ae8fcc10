"""Debounced autosave for journal and canvas editors.

- debounce.py: per-key cancellable timers and the saved/saving/unsaved status
- editors.py: savers bound to the portfolio store
"""

from .debounce import DebouncedSaver, SaveStatus
from .editors import canvas_saver, journal_saver, thesis_saver
