from typing import List

EMPTY = ""
MARKS = ("X", "O")   # first mover, second mover
EMPTY_SYMBOL = "-"

WIN_LINES = [
    (0,1,2),(3,4,5),(6,7,8),
    (0,3,6),(1,4,7),(2,5,8),
    (0,4,8),(2,4,6)
]

class Board:
    """
    Plain 3x3 tic-tac-toe board, cells in row-major order (0..8).
    - Cells hold "" (empty), "X" or "O".
    - No validation happens here: callers check range/occupancy before apply().
    - Whose turn it is is never stored; it is derived from the mark counts.
    """
    SIZE = 9

    def __init__(self):
        self._cells = [EMPTY] * self.SIZE

    @property
    def cells(self) -> List[str]:
        return list(self._cells)

    def reset(self):
        self._cells = [EMPTY] * self.SIZE

    def apply(self, index: int, mark: str):
        self._cells[index] = mark

    def is_empty(self, index: int) -> bool:
        return self._cells[index] == EMPTY

    def count(self, mark: str) -> int:
        return sum(1 for c in self._cells if c == mark)

    def current_turn(self) -> str:
        # X always moves first, so equal counts means X is up
        return MARKS[0] if self.count(MARKS[0]) == self.count(MARKS[1]) else MARKS[1]

    def winner(self, mark: str) -> bool:
        for a,b,c in WIN_LINES:
            if self._cells[a] == self._cells[b] == self._cells[c] == mark:
                return True
        return False

    def is_full(self) -> bool:
        return all(c != EMPTY for c in self._cells)

    def encode(self) -> List[str]:
        return [c if c != EMPTY else EMPTY_SYMBOL for c in self._cells]

    def __repr__(self):
        return f"Board({''.join(self.encode())})"
