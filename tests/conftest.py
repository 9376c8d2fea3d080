import pytest

from tictactoe_net.game_server.session import GameSession


class FakePeer:
    """In-memory stand-in for a PlayerConnection: records every line sent."""

    def __init__(self, mark, name):
        self.mark = mark
        self.name = name
        self.opponent = None
        self.sent = []

    def send(self, line):
        self.sent.append(line)

    def drain(self):
        out, self.sent = self.sent, []
        return out

    def last(self, keyword):
        for line in reversed(self.sent):
            if line.split(" ", 1)[0] == keyword:
                return line
        return None


@pytest.fixture()
def peers():
    return FakePeer("X", "Alice"), FakePeer("O", "Bob")


@pytest.fixture()
def session(peers):
    s = GameSession(*peers)
    s.start()
    for p in peers:
        p.drain()
    return s


def play(session, peers, moves):
    """Alternate moves starting with X."""
    x, o = peers
    for i, idx in enumerate(moves):
        assert session.on_move_request(x if i % 2 == 0 else o, idx)
