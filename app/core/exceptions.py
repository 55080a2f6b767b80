"""
Rejections raised by the wager engine.

Every error carries a fixed literal message and the HTTP status the API
layer answers with.
"""


class WagerError(Exception):
    message = "Wager rejected"
    status_code = 400

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthorized(WagerError):
    message = "Only callable by owner"
    status_code = 403


class InvalidPick(WagerError):
    message = "Must be tails or heads."


class DepositTooHigh(WagerError):
    message = "Deposit is too high"


class InvalidAmount(WagerError):
    message = "Amount must not be negative"


class NoPickYet(WagerError):
    message = "You have to pick a side first!"


class NoDepositYet(WagerError):
    message = "You have to deposit ETH first!"


class FlipInProgress(WagerError):
    message = "Flip is in progress, coin didn't land yet!"
    status_code = 409


class NoResultYet(WagerError):
    message = "You have to play first!"


class NotAWinner(WagerError):
    message = "You are not a winner"


class InsufficientPoolBalance(WagerError):
    message = "Not enough balance to withdraw. Please contact the owner."


class UnknownRequest(WagerError):
    message = "Request not found"
    status_code = 404
