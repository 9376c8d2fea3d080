import threading

from conftest import FakePeer, play
from tictactoe_net.game_server.session import GameSession, SessionState


def test_start_announces_marks_names_scores_board():
    x, o = FakePeer("X", "Alice"), FakePeer("O", "Bob")
    s = GameSession(x, o)
    assert s.state is SessionState.WAITING_FOR_PEERS
    s.start()
    assert s.state is SessionState.IN_PROGRESS
    assert x.sent[:3] == ["START X", "PLAYER1 Alice", "PLAYER2 Bob"]
    assert o.sent[:3] == ["START O", "PLAYER1 Alice", "PLAYER2 Bob"]
    for p in (x, o):
        assert p.last("SCORE") == "SCORE 0 0 0"
        assert p.last("BOARD") == "BOARD -,-,-,-,-,-,-,-,-"
    assert x.sent[-1] == "MESSAGE Your turn."
    assert o.sent[-1] == "MESSAGE Waiting for opponent's move."
    assert x.opponent is o and o.opponent is x


def test_move_broadcasts_board_and_turns(session, peers):
    x, o = peers
    assert session.on_move_request(x, 4)
    for p in peers:
        assert p.last("BOARD") == "BOARD -,-,-,-,X,-,-,-,-"
    assert x.sent[-1] == "MESSAGE Waiting for opponent's move."
    assert o.sent[-1] == "MESSAGE Your turn."


def test_turn_alternates(session, peers):
    x, o = peers
    for i, idx in enumerate([0, 4, 8, 2, 6]):
        mover, other = (x, o) if i % 2 == 0 else (o, x)
        assert session.board.current_turn() == mover.mark
        other.drain()
        assert not session.on_move_request(other, (idx + 1) % 9)
        assert other.last("INVALID") == "INVALID It's not your turn."
        assert session.on_move_request(mover, idx)


def test_wrong_turn_leaves_board_and_opponent_alone(session, peers):
    x, o = peers
    assert not session.on_move_request(o, 0)
    assert session.board.encode() == ["-"] * 9
    assert o.sent == ["INVALID It's not your turn."]
    assert x.sent == []


def test_occupied_and_out_of_range(session, peers):
    x, o = peers
    session.on_move_request(x, 0)
    before = session.board.cells
    o.drain()
    assert not session.on_move_request(o, 0)
    assert o.sent == ["INVALID Cell already occupied."]
    assert not session.on_move_request(o, 9)
    assert not session.on_move_request(o, -1)
    assert o.sent[1:] == ["INVALID Move out of bounds."] * 2
    assert session.board.cells == before


def test_top_row_win(session, peers):
    x, o = peers
    play(session, peers, [0, 4, 1, 7, 2])
    assert session.state is SessionState.ENDED
    assert session.scores() == (1, 0, 0)
    assert x.last("END") == "END Congratulations Alice! You win!"
    assert o.last("END") == "END You lose."
    for p in peers:
        assert p.sent[-1] == "SCORE 1 0 0"


def test_second_player_win_credits_player2(session, peers):
    x, o = peers
    play(session, peers, [0, 3, 1, 4, 8, 5])
    assert session.scores() == (0, 1, 0)
    assert o.last("END") == "END Congratulations Bob! You win!"
    assert x.last("END") == "END You lose."


def test_draw(session, peers):
    x, o = peers
    # X O X / X O O / O X X
    play(session, peers, [0, 1, 2, 4, 3, 5, 7, 6, 8])
    assert session.scores() == (0, 0, 1)
    assert x.last("END") == o.last("END") == "END It is a draw!"


def test_win_on_last_cell_is_not_a_draw(session, peers):
    x, o = peers
    # X O X / O X O / O X X -> final X at 8 fills the board and completes 0-4-8
    play(session, peers, [0, 1, 2, 3, 4, 5, 7, 6, 8])
    assert session.board.is_full()
    assert session.scores() == (1, 0, 0)
    assert x.last("END") == "END Congratulations Alice! You win!"


def test_moves_rejected_after_game_ended(session, peers):
    x, o = peers
    play(session, peers, [0, 4, 1, 7, 2])
    before = session.board.cells
    assert not session.on_move_request(o, 5)
    assert o.sent[-1] == "INVALID Game has ended. Please wait for a restart."
    assert session.board.cells == before


def test_restart_rejected_while_playing(session, peers):
    x, o = peers
    assert not session.on_restart_request(x)
    assert x.sent == ["INVALID Game is still ongoing."]
    assert session.restart_votes == {"X": False, "O": False}


def test_restart_needs_both_votes(session, peers):
    x, o = peers
    play(session, peers, [0, 4, 1, 7, 2])
    for p in peers:
        p.drain()

    assert not session.on_restart_request(x)
    assert not session.on_restart_request(x)
    assert session.game_ended
    assert session.board.count("X") == 3
    assert session.scores() == (1, 0, 0)
    assert o.sent == []
    assert x.sent == ["MESSAGE Waiting for opponent to accept the restart."] * 2

    assert session.on_restart_request(o)
    assert session.state is SessionState.IN_PROGRESS
    assert session.board.encode() == ["-"] * 9
    assert session.restart_votes == {"X": False, "O": False}
    for p in peers:
        assert p.last("BOARD") == "BOARD -,-,-,-,-,-,-,-,-"
        assert p.last("SCORE") == "SCORE 1 0 0"
        assert "MESSAGE The game has been restarted!" in p.sent
    assert x.sent[-1] == "MESSAGE Your turn."
    assert o.sent[-1] == "MESSAGE Waiting for opponent's move."
    assert session.on_move_request(x, 4)


def test_quit_credits_opponent_once(session, peers):
    x, o = peers
    session.on_move_request(x, 0)
    assert session.on_quit(o)
    assert not session.on_disconnect(o)
    assert not session.on_quit(x)
    assert session.scores() == (1, 0, 0)
    assert session.state is SessionState.TERMINATED
    assert session.wait_terminated(0)
    assert o.last("END") == "END Player Bob has quit the game."
    assert x.last("Quit") == "Quit Player Bob has quit the game."
    assert x.last("END") is None
    for p in peers:
        assert p.sent[-1] == "SCORE 1 0 0"


def test_disconnect_between_games_still_credits(session, peers):
    x, o = peers
    play(session, peers, [0, 4, 1, 7, 2])
    assert session.on_disconnect(x)
    assert session.scores() == (1, 1, 0)
    assert o.last("Quit") == "Quit Player Alice has disconnected."


def test_terminated_session_rejects_everything(session, peers):
    x, o = peers
    session.on_quit(x)
    o.drain()
    assert not session.on_move_request(o, 0)
    assert not session.on_restart_request(o)
    assert o.sent == ["INVALID Session is over. Your opponent has left."] * 2
    assert session.board.encode() == ["-"] * 9


def test_concurrent_quit_and_disconnect_credit_once(session, peers):
    x, o = peers
    barrier = threading.Barrier(2)
    results = []

    def leave(fn):
        barrier.wait()
        results.append(fn(x))

    threads = [threading.Thread(target=leave, args=(fn,)) for fn in (session.on_quit, session.on_disconnect)]
    for t in threads: t.start()
    for t in threads: t.join(5)
    assert sorted(results) == [False, True]
    assert session.scores() == (0, 1, 0)


def test_concurrent_moves_keep_count_invariant(session, peers):
    x, o = peers
    barrier = threading.Barrier(2)

    def hammer(peer):
        barrier.wait()
        for idx in range(9):
            session.on_move_request(peer, idx)

    threads = [threading.Thread(target=hammer, args=(p,)) for p in peers]
    for t in threads: t.start()
    for t in threads: t.join(5)
    diff = session.board.count("X") - session.board.count("O")
    assert diff in (0, 1)
    assert sum(session.scores()) <= 1
