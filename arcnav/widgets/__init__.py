from .dialogs import ConfirmDialog, InputDialog
from .entry_list import EntryList
from .path_bar import PathBar
from .status_footer import StatusFooter
from .top_bar import TopBar

__all__ = [
    "ConfirmDialog",
    "EntryList",
    "InputDialog",
    "PathBar",
    "StatusFooter",
    "TopBar",
]
