import logging
import queue
import socket
import threading

from tictactoe_net.common import protocol as P
from tictactoe_net.common.errors import ProtocolError

logger = logging.getLogger(__name__)

_CLOSE = object()   # writer sentinel

class PlayerConnection:
    """
    One connected peer: its mark, display name, socket and opponent link.

    send() only queues; a writer thread drains the queue with a bounded
    sendall() so a stalled peer never holds up the session lock. The read loop
    in serve() is the only caller of the session on this peer's behalf.
    """

    def __init__(self, sock: socket.socket, addr, mark: str, default_name: str,
                 write_timeout: float = 5.0):
        self.sock = sock
        self.addr = addr
        self.mark = mark
        self.name = default_name
        self.default_name = default_name
        self.opponent = None
        self.alive = True
        sock.settimeout(write_timeout)
        self.reader = P.LineReader(sock)
        self._outbox = queue.Queue()
        self._close_lock = threading.Lock()
        self._writer = threading.Thread(target=self._write_loop, name=f"writer-{mark}", daemon=True)
        self._writer.start()

    def __repr__(self):
        return f"PlayerConnection({self.mark}, {self.name!r}, {self.addr})"

    # ---- outbound ----
    def send(self, line: str):
        if self.alive:
            self._outbox.put(line)

    def _write_loop(self):
        while True:
            line = self._outbox.get()
            if line is _CLOSE:
                break
            try:
                P.send_line(self.sock, line)
            except OSError as e:
                logger.warning("write to %s failed: %s", self.name, e)
                self.alive = False
                break
        # wakes a reader still blocked in recv; after a failed write it then
        # reports the disconnect
        try: self.sock.shutdown(socket.SHUT_RDWR)
        except OSError: pass
        try: self.sock.close()
        except OSError: pass

    def close(self):
        """Flush queued lines then close the socket. Safe to call twice."""
        with self._close_lock:
            if not self.alive:
                return
            self.alive = False
        self._outbox.put(_CLOSE)

    def join(self, timeout=None):
        self._writer.join(timeout)

    # ---- setup ----
    def handshake(self, name_timeout: float = 60.0) -> str:
        """Greet the peer and settle its display name before the session starts."""
        self.send(P.notice(P.WELCOME, self.default_name))
        self.send(P.notice(P.MESSAGE, "Please enter your name:"))
        try:
            line = self.reader.readline(timeout=name_timeout)
        except (OSError, ValueError) as e:
            logger.info("no name from %s: %s", self.addr, e)
            line = None
        logger.debug("%s received: %r", self.mark, line)

        keyword, arg = P.parse_command(line) if line else ("", "")
        if keyword == P.NAME and arg:
            self.name = arg
        elif keyword == P.NAME:
            self.send(P.notice(P.INVALID, "Invalid name format. Using default name."))
        else:
            self.send(P.notice(P.INVALID, "Name not provided. Using default name."))

        self.send(P.notice(P.TITLE, f"Tic Tac Toe - {self.name}"))
        self.send(P.notice(P.MESSAGE, f"WELCOME {self.name}"))
        logger.info("%s connected from %s as %s", self.mark, self.addr, self.name)
        return self.name

    # ---- read loop ----
    def dispatch(self, session, line: str) -> bool:
        """Forward one inbound line. Returns False when the peer quit."""
        keyword, arg = P.parse_command(line)
        if keyword == P.MOVE:
            try:
                index = P.parse_move(arg)
            except ProtocolError as e:
                self.send(P.notice(P.INVALID, e))
                return True
            session.on_move_request(self, index)
        elif keyword == P.RESTART:
            session.on_restart_request(self)
        elif keyword == P.QUIT:
            session.on_quit(self)
            return False
        # unknown keywords are ignored
        return True

    def serve(self, session):
        try:
            while True:
                line = self.reader.readline()
                if line is None:
                    logger.info("%s closed the connection", self.name)
                    session.on_disconnect(self)
                    break
                logger.debug("%s sent: %s", self.name, line)
                if not self.dispatch(session, line):
                    break
        except (OSError, ValueError) as e:
            logger.info("%s disconnected unexpectedly: %s", self.name, e)
            session.on_disconnect(self)
        finally:
            self.close()

    def start(self, session) -> threading.Thread:
        t = threading.Thread(target=self.serve, args=(session,), name=f"reader-{self.mark}", daemon=True)
        t.start()
        return t
