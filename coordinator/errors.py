class CoordinatorError(Exception):
    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(CoordinatorError):
    """Rejected request; reported to the caller only, never broadcast."""


class WalletRequiredError(ValidationError):
    def __init__(self):
        super().__init__("Wallet address required")


class AlreadyQueuedError(ValidationError):
    def __init__(self, wallet: str):
        self.wallet = wallet
        super().__init__("Already in queue")


class SessionNotFoundError(ValidationError):
    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__("Game not found")


class ProtocolError(CoordinatorError):
    """Malformed or unknown inbound message; logged and dropped."""


class PayoutError(CoordinatorError):
    """The payout service could not complete a transfer."""


class PayoutUnavailableError(PayoutError):
    """The payout gateway could not be initialized."""
