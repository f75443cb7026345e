"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidBalanceError(DomainException, ValueError):
    """GNO balance is negative, non-finite or not a number"""

    pass


class InvalidCashbackRateError(DomainException, ValueError):
    """Cashback rate is outside the 0-100 percent range"""

    pass


class InvalidTierTableError(DomainException, ValueError):
    """Tier table has gaps, overlaps or is out of order"""

    pass


class GnosisPayAPIError(DomainException):
    """Gnosis Pay API returned an error or is unavailable"""

    pass


class UnauthorizedError(DomainException):
    """Session token is missing or was rejected upstream"""

    pass
