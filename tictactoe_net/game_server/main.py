import argparse
import logging
import socket
import sys
import threading

from tictactoe_net.config import ServerConfig
from tictactoe_net.game_logic import MARKS
from tictactoe_net.game_server.channel import PlayerConnection
from tictactoe_net.game_server.session import GameSession

logger = logging.getLogger(__name__)

SLOTS = [(MARKS[0], "Player 1"), (MARKS[1], "Player 2")]

def parse_args(argv=None) -> ServerConfig:
    d = ServerConfig()
    ap = argparse.ArgumentParser(description="Tic-Tac-Toe game server: pairs two TCP peers per session")
    ap.add_argument("--host", default=d.host)
    ap.add_argument("--port", type=int, default=d.port)
    ap.add_argument("--name-timeout", type=float, default=d.name_timeout)
    ap.add_argument("--write-timeout", type=float, default=d.write_timeout)
    ap.add_argument("--once", action="store_true", help="exit after the first session ends")
    ap.add_argument("--log-level", default=d.log_level)
    args = ap.parse_args(argv)
    return ServerConfig(host=args.host, port=args.port, name_timeout=args.name_timeout,
                        write_timeout=args.write_timeout, once=args.once, log_level=args.log_level)

class GameServer:
    """
    Listener: accepts exactly two connections per session (first one plays X),
    runs their name handshakes in order, then hands both to a GameSession and
    starts the two reader threads. The next pair is accepted only after that
    session has terminated.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.sock = None
        self.running = True
        self.session = None
        self.session_ready = threading.Event()

    @property
    def address(self):
        return self.sock.getsockname()

    def bind(self):
        # OSError here is fatal: no session is created
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((self.config.host, self.config.port))
            s.listen(2)
        except OSError:
            s.close()
            raise
        s.settimeout(1.0)
        self.sock = s
        logger.info("listening on %s:%s", *self.address[:2])
        return self

    def _accept(self):
        while self.running:
            try:
                return self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                # listening socket closed by shutdown()
                if not self.running:
                    return None
                raise
        return None

    def accept_pair(self):
        players = []
        for mark, default_name in SLOTS:
            logger.info("waiting for %s to connect...", default_name)
            accepted = self._accept()
            if accepted is None:
                for p in players:
                    p.close()
                return None
            c, addr = accepted
            p = PlayerConnection(c, addr, mark, default_name, write_timeout=self.config.write_timeout)
            p.handshake(self.config.name_timeout)
            players.append(p)
        return players

    def serve_one(self):
        players = self.accept_pair()
        if players is None:
            return None
        session = GameSession(*players)
        self.session = session
        session.start()
        for p in players:
            p.start(session)
        self.session_ready.set()
        while self.running and not session.wait_terminated(1.0):
            pass
        # Quit/SCORE lines are already queued; close() flushes them first
        for p in players:
            p.close()
        return session

    def serve_forever(self):
        try:
            while self.running:
                session = self.serve_one()
                if session is None or self.config.once:
                    break
                self.session_ready.clear()
                logger.info("session over, scores %s; waiting for the next pair", session.scores())
        finally:
            self.shutdown()

    def shutdown(self):
        self.running = False
        if self.sock is not None:
            try: self.sock.close()
            except OSError: pass

def main(argv=None):
    config = parse_args(argv)
    logging.basicConfig(level=config.log_level.upper(),
                        format="[GS] %(asctime)s %(levelname)s %(name)s: %(message)s")
    server = GameServer(config)
    try:
        server.bind()
    except OSError as e:
        logger.error("cannot listen on %s:%s: %s", config.host, config.port, e)
        sys.exit(1)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt -> shutting down")

if __name__ == "__main__":
    main()
