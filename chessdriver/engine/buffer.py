"""Outbound command buffer: protocol lines that cannot be sent yet, kept in submission order."""


class OutboundBuffer:
    def __init__(self) -> None:
        self._lines: list[str] = []

    def append(self, line: str) -> None:
        self._lines.append(line)

    def drain(self) -> list[str]:
        """Hand out every buffered line (oldest first) and empty the buffer"""
        lines, self._lines = self._lines, []
        return lines

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)
