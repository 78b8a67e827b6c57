"""Status texts and camera group selection state."""

from __future__ import annotations

NO_CONNECTIONS_TEXT = "连接数: 无RTSP流连接"


def database_status_text(connected: bool) -> str:
    """Return the status line shown for the database connection."""
    if connected:
        return "数据库连接状态: 已连接 | "
    return "数据库连接状态: 未连接 | "


def connection_count_text(count: int) -> str:
    """Return the status line showing how many streams are connected."""
    return f"连接数: {count}"


class GroupSelector:
    """Tracks which camera group is selected, one checked entry at a time."""

    def __init__(self, groups: int):
        if groups < 0:
            raise ValueError(f"group count must not be negative, got {groups}")
        self._checked = [False] * groups
        if self._checked:
            self._checked[0] = True
        self.current = 0 if groups else -1

    def labels(self) -> list[str]:
        return [f"第{i + 1}组" for i in range(len(self._checked))]

    @property
    def checked(self) -> tuple[bool, ...]:
        return tuple(self._checked)

    def select(self, index: int) -> bool:
        """Select a group as if triggered by the user.

        Returns True when the selection changed.
        """
        if not 0 <= index < len(self._checked):
            raise IndexError(f"no group {index}")
        self._checked = [i == index for i in range(len(self._checked))]
        if self.current == index:
            return False
        self.current = index
        return True

    def set_current(self, index: int) -> None:
        """Select a group programmatically; out-of-range indices are ignored."""
        if not 0 <= index < len(self._checked):
            return
        if 0 <= self.current < len(self._checked):
            self._checked[self.current] = False
        self._checked[index] = True
        self.current = index