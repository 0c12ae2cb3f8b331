class RedeemableError(Exception):
    """Base class for errors raised by the redemption engine."""


class RedeemableConfigurationError(RedeemableError):
    pass


class CodeSpaceExhausted(RedeemableError):
    """No free code was found within the allowed number of attempts."""

    def __init__(self, code_length: int, attempts: int):
        self.code_length = code_length
        self.attempts = attempts
        super().__init__(
            f"could not generate a unique code of length {code_length} after {attempts} attempts"
        )


class DetachedRedeemableError(RedeemableError):
    pass


class UnsupportedRedemptionQuery(RedeemableError):
    pass
