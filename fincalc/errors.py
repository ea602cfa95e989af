class FinanceError(Exception):
    """
    Base class for errors raised by the rate of return solvers.
    """


class InvalidCashFlowSigns(FinanceError, ValueError):
    """
    Cash flow series has no positive or no negative value, so there is
    no rate at which its NPV crosses zero.
    """


class LengthMismatch(FinanceError, ValueError):
    pass


class SearchExhausted(FinanceError, RuntimeError):
    """
    IRR objective was evaluated more times than the caller's depth allows.
    """


class DidNotConverge(FinanceError, RuntimeError):
    """
    XIRR Newton iteration did not settle to a stable rate.
    """
