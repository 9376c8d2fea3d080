# client/cli.py
import argparse, socket, sys, threading
from tictactoe_net.common import protocol as P

# ---------------- State ----------------
class State:
    def __init__(self):
        self.mark = None
        self.names = {P.PLAYER1: "Player 1", P.PLAYER2: "Player 2"}
        self.board = [""] * 9
        self.score = (0, 0, 0)
        self.title = "Tic Tac Toe"
        self.game_over = False
        self.alive = True

    def apply(self, line: str):
        """Fold one server notice into the state. Returns text to show, or None."""
        keyword, arg = P.parse_command(line)
        if keyword == P.START:
            self.mark = arg
            return f"You are {arg}."
        if keyword in (P.PLAYER1, P.PLAYER2):
            self.names[keyword] = arg
            return None
        if keyword == P.BOARD:
            self.board = P.decode_board(arg)
            return P.pretty_board(self.board)
        if keyword == P.SCORE:
            self.score = P.decode_score(arg)
            p1, p2, d = self.score
            return f"Score: {self.names[P.PLAYER1]} {p1} - {p2} {self.names[P.PLAYER2]} (draws {d})"
        if keyword == P.TITLE:
            self.title = arg
            return f"== {arg} =="
        if keyword == P.END:
            self.game_over = True
            return f"{arg}  (r = restart, q = quit)"
        if keyword == P.OPPONENT_LEFT:
            self.game_over = True
            self.alive = False
            return arg
        if keyword in (P.MESSAGE, P.WELCOME):
            return arg
        if keyword == P.INVALID:
            return f"! {arg}"
        return None

def safe_print(*a, **k):
    k.setdefault("flush", True)
    print(*a, **k)

def to_command(text: str):
    """Map what the user typed to a protocol line; None if it means nothing."""
    text = text.strip().lower()
    if text.isdigit():
        return P.notice(P.MOVE, int(text))
    if text in ("r", "restart"):
        return P.RESTART
    if text in ("q", "quit", "exit"):
        return P.QUIT
    return None

def receive_loop(sock, state: State):
    reader = P.LineReader(sock)
    try:
        while state.alive:
            line = reader.readline()
            if line is None:
                safe_print("[Client] Server closed the connection.")
                break
            text = state.apply(line)
            if text:
                safe_print(text)
    except (OSError, ValueError) as e:
        safe_print("[Client] connection error:", e)
    finally:
        state.alive = False

def run(host: str, port: int, name: str):
    sock = socket.create_connection((host, port))
    state = State()
    P.send_line(sock, P.notice(P.NAME, name))
    threading.Thread(target=receive_loop, args=(sock, state), daemon=True).start()
    try:
        for text in sys.stdin:
            if not state.alive:
                break
            cmd = to_command(text)
            if cmd is None:
                safe_print("cell 0-8 to move, r = restart, q = quit")
                continue
            P.send_line(sock, cmd)
            if cmd == P.QUIT:
                break
    except (KeyboardInterrupt, OSError):
        pass
    finally:
        try: sock.close()
        except OSError: pass

def main(argv=None):
    ap = argparse.ArgumentParser(description="Terminal client for the Tic-Tac-Toe game server")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=7000)
    ap.add_argument("--name", default="")
    args = ap.parse_args(argv)
    name = args.name or input("Your name: ").strip()
    run(args.host, args.port, name)

if __name__ == "__main__":
    main()
