from tokensale.nanocontracts.exception import NCFail


class CrowdsaleError(NCFail):
    """Base class of the failures of a token sale."""


class Unauthorized(CrowdsaleError):
    """The caller is not the owner of the sale."""


class SaleNotOpen(CrowdsaleError):
    """The sale has not started yet or has already ended."""


class BelowMinimumContribution(CrowdsaleError):
    pass


class CapExceeded(CrowdsaleError):
    """Accepting the purchase would take the amount raised above the cap."""


class InvalidTimeRange(CrowdsaleError):
    pass
