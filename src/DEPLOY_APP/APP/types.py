from enum import Enum, auto


class Behavior(Enum):
    """Вид изменения пути между двумя сборками."""
    ADD = auto()
    KEEP = auto()
    REMOVE = auto()


class BackendKind(Enum):
    """Закрытый набор способов публикации."""
    GIT = auto()
    SFTP = auto()


class ReplayMode(Enum):
    """Режим воспроизведения изменений на удалённом сервере."""
    FULL = auto()
    DIFF = auto()
