"""Market error taxonomy.

Every rejected call raises one of these before any state is touched.
The market instance stays usable after any of them.
"""

from __future__ import annotations


class MarketError(Exception):
    """Base class for all rejected market operations."""


class DeadlinePassed(MarketError):
    """The operation's window has already closed."""


class TooEarly(MarketError):
    """The operation's window has not opened yet."""


class WagerMismatchError(MarketError):
    """Wager does not equal the market's fixed wager."""


class DuplicateCommitError(MarketError):
    """A prediction is already committed for this address."""


class InvalidChoiceError(MarketError):
    """Choice is not 'Yes' or 'No'."""


class InvalidCommitmentError(MarketError):
    """Commitment is empty or not a 32-byte hash."""


class CommitmentMismatchError(MarketError):
    """Hash of the revealed preimage does not match the stored commitment."""


class AlreadyRevealedError(MarketError):
    """Prediction has already been revealed."""


class AuthorizationError(MarketError):
    """Signature is malformed or was not produced by the claimed participant."""


class InvalidClaimError(MarketError):
    """Claimant did not reveal the winning side, or the event is unresolved."""


class AlreadyClaimedError(MarketError):
    """Winnings were already paid out to this address."""


class MarketConfigError(MarketError, ValueError):
    """Market parameters violate a construction invariant."""
