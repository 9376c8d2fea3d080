import enum
import logging
import threading
from typing import Optional, Tuple

from tictactoe_net.common import protocol as P
from tictactoe_net.common.errors import (
    CellOccupied, GameAlreadyEnded, GameStillInProgress, NotYourTurn,
    OutOfRange, ProtocolError, SessionTerminated,
)
from tictactoe_net.game_logic import Board

logger = logging.getLogger(__name__)

DRAW_TEXT = "It is a draw!"
LOSE_TEXT = "You lose."
YOUR_TURN = "Your turn."
WAITING = "Waiting for opponent's move."

class SessionState(enum.Enum):
    WAITING_FOR_PEERS = "waiting_for_peers"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"
    TERMINATED = "terminated"

class GameSession:
    """
    Shared state of one two-player pairing: board, scoreboard and restart votes.

    Both peers' reader threads call into this object; every public operation
    runs under self.lock, outbound sends included. Peers are anything with
    `mark`, `name`, `opponent` and a non-blocking `send(line)`.
    """

    def __init__(self, player1, player2):
        self.player1, self.player2 = player1, player2
        player1.opponent, player2.opponent = player2, player1
        self.lock = threading.Lock()
        self.board = Board()
        self.p1_wins = 0
        self.p2_wins = 0
        self.draws = 0
        self.restart_votes = {player1.mark: False, player2.mark: False}
        self.state = SessionState.WAITING_FOR_PEERS
        self._terminated = threading.Event()

    # ---- read accessors ----
    @property
    def game_ended(self) -> bool:
        return self.state in (SessionState.ENDED, SessionState.TERMINATED)

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def scores(self) -> Tuple[int, int, int]:
        with self.lock:
            return self.p1_wins, self.p2_wins, self.draws

    def wait_terminated(self, timeout: Optional[float] = None) -> bool:
        return self._terminated.wait(timeout)

    # ---- helpers (caller holds the lock) ----
    def _players(self):
        return (self.player1, self.player2)

    def _broadcast(self, line: str):
        for p in self._players():
            p.send(line)

    def _send_board(self):
        self._broadcast(P.notice(P.BOARD, P.encode_board(self.board.encode())))

    def _send_scores(self):
        self._broadcast(P.notice(P.SCORE, P.encode_score(self.p1_wins, self.p2_wins, self.draws)))

    def _send_turns(self):
        turn = self.board.current_turn()
        for p in self._players():
            p.send(P.notice(P.MESSAGE, YOUR_TURN if p.mark == turn else WAITING))

    def _credit_win(self, peer):
        if peer is self.player1:
            self.p1_wins += 1
        else:
            self.p2_wins += 1

    def _check_move(self, peer, index: int):
        if self.terminated:
            raise SessionTerminated()
        if self.game_ended:
            raise GameAlreadyEnded()
        if peer.mark != self.board.current_turn():
            raise NotYourTurn()
        if not 0 <= index < Board.SIZE:
            raise OutOfRange()
        if not self.board.is_empty(index):
            raise CellOccupied()

    def _reject(self, peer, exc: ProtocolError) -> bool:
        logger.info("rejected %s from %s: %s", type(exc).__name__, peer.name, exc)
        peer.send(P.notice(P.INVALID, exc))
        return False

    # ---- operations ----
    def start(self):
        with self.lock:
            self.state = SessionState.IN_PROGRESS
            for p in self._players():
                p.send(P.notice(P.START, p.mark))
                p.send(P.notice(P.PLAYER1, self.player1.name))
                p.send(P.notice(P.PLAYER2, self.player2.name))
            self._send_scores()
            self._send_board()
            self._send_turns()
            logger.info("session started: %s (%s) vs %s (%s)",
                        self.player1.name, self.player1.mark, self.player2.name, self.player2.mark)

    def on_move_request(self, peer, index: int) -> bool:
        """Validate and apply a move. Returns False when it was rejected with INVALID."""
        with self.lock:
            try:
                self._check_move(peer, index)
            except ProtocolError as e:
                return self._reject(peer, e)

            self.board.apply(index, peer.mark)
            logger.debug("%s placed %s at %d -> %r", peer.name, peer.mark, index, self.board)
            self._send_board()

            # a line completed on the last empty cell is a win, not a draw
            if self.board.winner(peer.mark):
                self.state = SessionState.ENDED
                self._credit_win(peer)
                peer.send(P.notice(P.END, f"Congratulations {peer.name}! You win!"))
                peer.opponent.send(P.notice(P.END, LOSE_TEXT))
                self._send_scores()
                logger.info("game ended: %s wins", peer.name)
            elif self.board.is_full():
                self.state = SessionState.ENDED
                self.draws += 1
                self._broadcast(P.notice(P.END, DRAW_TEXT))
                self._send_scores()
                logger.info("game ended: draw")
            else:
                self._send_turns()
            return True

    def on_restart_request(self, peer) -> bool:
        """Record a restart vote. Returns True when this vote restarted the game."""
        with self.lock:
            try:
                if self.terminated:
                    raise SessionTerminated()
                if not self.game_ended:
                    raise GameStillInProgress()
            except ProtocolError as e:
                return self._reject(peer, e)

            self.restart_votes[peer.mark] = True
            if not all(self.restart_votes.values()):
                peer.send(P.notice(P.MESSAGE, "Waiting for opponent to accept the restart."))
                logger.info("%s voted to restart", peer.name)
                return False

            for mark in self.restart_votes:
                self.restart_votes[mark] = False
            self.state = SessionState.IN_PROGRESS
            self.board.reset()
            self._send_board()
            self._send_scores()
            self._broadcast(P.notice(P.MESSAGE, "The game has been restarted!"))
            self._send_turns()
            logger.info("game restarted")
            return True

    def on_quit(self, peer) -> bool:
        return self._terminate(peer, f"Player {peer.name} has quit the game.")

    def on_disconnect(self, peer) -> bool:
        return self._terminate(peer, f"Player {peer.name} has disconnected.")

    def _terminate(self, peer, text: str) -> bool:
        with self.lock:
            # quit is usually followed by the socket closing; credit only once
            if self.terminated:
                return False
            self.state = SessionState.TERMINATED
            remaining = peer.opponent
            self._credit_win(remaining)
            peer.send(P.notice(P.END, text))
            remaining.send(P.notice(P.OPPONENT_LEFT, text))
            self._send_scores()
            self._terminated.set()
            logger.info("session terminated: %s", text)
            return True
