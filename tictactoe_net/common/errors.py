class ProtocolError(Exception):
    """A command that is rejected with INVALID; the session carries on.

    str(exc) is the text sent back to the offending peer.
    """
    message = "Invalid command."

    def __init__(self, message=None):
        super().__init__(message or self.message)

class MalformedCommand(ProtocolError):
    message = "Invalid move format."

class NotYourTurn(ProtocolError):
    message = "It's not your turn."

class GameAlreadyEnded(ProtocolError):
    message = "Game has ended. Please wait for a restart."

class SessionTerminated(GameAlreadyEnded):
    message = "Session is over. Your opponent has left."

class OutOfRange(ProtocolError):
    message = "Move out of bounds."

class CellOccupied(ProtocolError):
    message = "Cell already occupied."

class GameStillInProgress(ProtocolError):
    message = "Game is still ongoing."
