from textual.message import Message

from arcnav.core.selection import ClickModifiers


class NavigateRequest(Message):
    def __init__(self, folder: str) -> None:
        self.folder = folder
        super().__init__()


class HistoryRequest(Message):
    def __init__(self, delta: int) -> None:
        self.delta = delta
        super().__init__()


class NavigateUpRequest(Message):
    pass


class ItemClickRequest(Message):
    def __init__(self, path: str, index: int, modifiers: ClickModifiers) -> None:
        super().__init__()
        self.path = path
        self.index = index
        self.modifiers = modifiers


class ItemActivateRequest(Message):
    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path


class EmptyClickRequest(Message):
    pass
