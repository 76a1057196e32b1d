"""Exception hierarchy for lottery contract client errors.

A base exception class with a specialised contract error that carries the
transaction hash (when one was submitted) so callers can point users at the
block explorer.
"""


class LotteryError(Exception):
    """Base exception for all lottery client errors."""


class LotteryContractError(LotteryError):
    """Error raised by an RPC call or a contract transaction.

    Args:
        msg: Human-readable description of the error.
        tx_hash: Hash of the submitted transaction, if any.

    """

    def __init__(self, msg: str, tx_hash: str | None = None) -> None:
        """Initialize lottery contract error.

        Args:
            msg: Human-readable description of the error.
            tx_hash: Hash of the submitted transaction, if any.

        """
        super().__init__(f"{msg} (tx: {tx_hash})" if tx_hash else msg)
        self.msg = msg
        self.tx_hash = tx_hash


class NotAuthenticatedError(LotteryError):
    """Raise when a transaction is attempted without a signing key."""
