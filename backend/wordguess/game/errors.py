from __future__ import annotations


class GameError(Exception):
    status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(GameError):
    """Missing or malformed request fields."""

    status = 400


class InvalidState(GameError):
    """The action needs a precondition that does not hold (no secret, poll running, ...)."""

    status = 409


class ChatSourceFailure(GameError):
    status = 502
