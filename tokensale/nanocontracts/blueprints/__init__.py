from tokensale.nanocontracts.blueprints.crowdsale import TimedCappedCrowdsale

__all__ = ['TimedCappedCrowdsale']
