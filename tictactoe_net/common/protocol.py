import select
import socket
import time
from typing import List, Optional, Tuple

from tictactoe_net.common.errors import MalformedCommand
from tictactoe_net.game_logic import EMPTY, EMPTY_SYMBOL

ENCODING = "utf-8"
_MAX_LINE = 4096

# peer -> server
NAME = "NAME"
MOVE = "MOVE"
RESTART = "RESTART"
QUIT = "QUIT"

# server -> peer
WELCOME = "WELCOME"
START = "START"
PLAYER1 = "PLAYER1"
PLAYER2 = "PLAYER2"
SCORE = "SCORE"
BOARD = "BOARD"
MESSAGE = "MESSAGE"
INVALID = "INVALID"
END = "END"
OPPONENT_LEFT = "Quit"
TITLE = "TITLE"

def notice(keyword: str, payload="") -> str:
    payload = str(payload)
    return f"{keyword} {payload}" if payload else keyword

def send_line(sock: socket.socket, line: str) -> None:
    sock.sendall((line + "\n").encode(ENCODING))

class LineReader:
    """
    Buffered newline reader over a socket.
    The socket may carry a timeout (the writer side needs one); a recv timeout
    only ends readline() when its own deadline has passed, partial lines are kept.
    """
    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._buf = b""

    def readline(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next line without its terminator, None on EOF.
        Raises socket.timeout once `timeout` seconds pass without a full line,
        however the bytes trickle in."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while b"\n" not in self._buf:
            if len(self._buf) > _MAX_LINE:
                raise ValueError(f"line too long: {len(self._buf)} > {_MAX_LINE}")
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise socket.timeout("no complete line before deadline")
                # wait on readability so the socket's own timeout stays untouched
                ready, _, _ = select.select([self.sock], [], [], remaining)
                if not ready:
                    continue
            try:
                chunk = self.sock.recv(1024)
            except socket.timeout:
                continue
            if not chunk:
                return None
            self._buf += chunk
        raw, self._buf = self._buf.split(b"\n", 1)
        return raw.decode(ENCODING, errors="replace").rstrip("\r")

def parse_command(line: str) -> Tuple[str, str]:
    """'MOVE 4' -> ('MOVE', '4'); the argument keeps inner spaces (names)."""
    parts = line.strip().split(" ", 1)
    keyword = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""
    return keyword, arg

def parse_move(arg: str) -> int:
    try:
        return int(arg)
    except ValueError:
        raise MalformedCommand() from None

# ---- board / score payloads ----
def encode_board(symbols: List[str]) -> str:
    return ",".join(symbols)

def decode_board(payload: str) -> List[str]:
    cells = payload.split(",")
    if len(cells) != 9:
        raise ValueError(f"board needs 9 cells, got {len(cells)}")
    return [EMPTY if c in (EMPTY_SYMBOL, "") else c for c in cells]

def encode_score(p1_wins: int, p2_wins: int, draws: int) -> str:
    return f"{p1_wins} {p2_wins} {draws}"

def decode_score(payload: str) -> Tuple[int, int, int]:
    p1, p2, d = (int(x) for x in payload.split())
    return p1, p2, d

def pretty_board(cells: List[str]) -> str:
    s = []
    for r in range(3):
        row = " | ".join(c if c else str(r*3+i) for i, c in enumerate(cells[r*3:(r+1)*3]))
        s.append(" " + row + " ")
        if r < 2:
            s.append("---+---+---")
    return "\n".join(s)
